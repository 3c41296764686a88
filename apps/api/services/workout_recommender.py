"""
Workout-Type Recommender

Looks at the last 14 days of generated workouts and suggests the type that
keeps the training mix balanced:

- about 1 in 7 sessions should be recovery
- about 1 in 4 sessions should be a long run
- otherwise, standard

Workouts are classified from their shape (run and station counts), not from
any stored label, so user-built workouts are classified the same way.

History is read through an injected fetch function. A failing fetch means
"no opinion", never an error for the caller.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from services.workout_composer import WorkoutType

logger = logging.getLogger(__name__)

LOOKBACK_DAYS = 14
RECOVERY_TARGET_RATIO = 1 / 7
LONG_RUN_TARGET_RATIO = 1 / 4

FetchRecentWorkouts = Callable[[str, datetime], List[Any]]


@dataclass
class WorkoutMixAnalysis:
    total_workouts: int
    recovery_count: int
    long_run_count: int
    standard_count: int
    recovery_ratio: float
    long_run_ratio: float
    recommendation: Optional[WorkoutType]
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalWorkouts": self.total_workouts,
            "recoveryCount": self.recovery_count,
            "longRunCount": self.long_run_count,
            "standardCount": self.standard_count,
            "recoveryRatio": round(self.recovery_ratio, 3),
            "longRunRatio": round(self.long_run_ratio, 3),
            "recommendation": self.recommendation.value if self.recommendation else None,
            "message": self.message,
        }


def _details_of(workout: Any) -> Optional[Dict[str, Any]]:
    if isinstance(workout, dict):
        return workout.get("workout_details", workout)
    return getattr(workout, "workout_details", None)


def classify_workout(details: Optional[Dict[str, Any]]) -> WorkoutType:
    """long_run: >=8 runs and <=2 stations; recovery: <=4 of each; else standard."""
    if not details:
        return WorkoutType.STANDARD

    run_count = len(details.get("runs") or [])
    station_count = len(details.get("stations") or [])

    if run_count >= 8 and station_count <= 2:
        return WorkoutType.LONG_RUN
    if run_count <= 4 and station_count <= 4:
        return WorkoutType.RECOVERY
    return WorkoutType.STANDARD


def analyze_workout_mix(workouts: Iterable[Any]) -> WorkoutMixAnalysis:
    """Classify a window of workouts and decide what should come next."""
    types = [classify_workout(_details_of(w)) for w in workouts]
    total = len(types)

    if total == 0:
        return WorkoutMixAnalysis(
            total_workouts=0,
            recovery_count=0,
            long_run_count=0,
            standard_count=0,
            recovery_ratio=0.0,
            long_run_ratio=0.0,
            recommendation=None,
            message="No recent workouts found. Start with a standard workout!",
        )

    recovery = types.count(WorkoutType.RECOVERY)
    long_run = types.count(WorkoutType.LONG_RUN)
    standard = types.count(WorkoutType.STANDARD)
    recovery_ratio = recovery / total
    long_run_ratio = long_run / total

    if recovery_ratio < RECOVERY_TARGET_RATIO:
        recommendation = WorkoutType.RECOVERY
        message = (
            f"You've had {recovery} recovery workouts in the last {LOOKBACK_DAYS} days. "
            "Consider a recovery session to maintain the 1-in-7 pattern."
        )
    elif long_run_ratio < LONG_RUN_TARGET_RATIO:
        recommendation = WorkoutType.LONG_RUN
        message = (
            f"You've had {long_run} long run workouts in the last {LOOKBACK_DAYS} days. "
            "Consider a long run session to maintain the 1-in-4 pattern."
        )
    else:
        recommendation = WorkoutType.STANDARD
        message = (
            f"Your workout pattern looks balanced! You've had {recovery} recovery "
            f"and {long_run} long run workouts recently."
        )

    return WorkoutMixAnalysis(
        total_workouts=total,
        recovery_count=recovery,
        long_run_count=long_run,
        standard_count=standard,
        recovery_ratio=recovery_ratio,
        long_run_ratio=long_run_ratio,
        recommendation=recommendation,
        message=message,
    )


def fetch_window(
    user_id: str,
    fetch_recent_workouts: FetchRecentWorkouts,
    now: Optional[datetime] = None,
) -> Optional[List[Any]]:
    """Workouts from the lookback window, or None if the fetch failed."""
    since = (now or datetime.now(timezone.utc)) - timedelta(days=LOOKBACK_DAYS)
    try:
        return list(fetch_recent_workouts(user_id, since) or [])
    except Exception as e:
        logger.error(f"Error analyzing workout frequency for {user_id}: {e}")
        return None


def recommend_workout_type(
    user_id: str,
    fetch_recent_workouts: FetchRecentWorkouts,
    now: Optional[datetime] = None,
) -> Optional[WorkoutType]:
    """Recommended type for the next session, or None without recent history."""
    workouts = fetch_window(user_id, fetch_recent_workouts, now)
    if not workouts:
        return None
    return analyze_workout_mix(workouts).recommendation

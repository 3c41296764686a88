"""
Workout Analytics

Everything here is computed fresh from the athlete's logged history; nothing
is cached or persisted, so the same history always gives the same answer.

Provides:
- Personal records (overall time, per station, per run distance), replayed
  chronologically so each PR knows how much it improved on the last one
- Trend series for the progress chart
- Summary stats (count, average, best, day streak)
- First-vs-latest improvement

Empty history is a valid input everywhere and yields zero/None defaults.
"""
import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from services.time_codec import format_seconds, parse_time

logger = logging.getLogger(__name__)

RECORD_OVERALL = "overall"
RECORD_STATION = "station"
RECORD_RUN = "run"

OVERALL_RECORD_NAME = "Overall Time"
DEFAULT_TREND_LIMIT = 10
CURRENT_STATION_PR_LIMIT = 5


def _parse_moment(value: Any) -> Optional[datetime]:
    """ISO-8601 strings (as the API emits them) to datetime; unparseable -> None."""
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    return value


@dataclass
class LogRecord:
    """The slice of a workout log analytics needs."""
    id: Any
    date_completed: datetime
    overall_time: Optional[int] = None
    performance_data: Dict[str, Any] = field(default_factory=dict)
    fitness_level: Optional[str] = None
    workout_id: Any = None

    @classmethod
    def from_row(cls, row: Any) -> "LogRecord":
        """Adapt a WorkoutLog ORM row or an API-shaped dict."""
        if isinstance(row, dict):
            details = row.get("workoutDetails") or row.get("workout_details") or {}
            return cls(
                id=row.get("id"),
                date_completed=_parse_moment(row.get("dateCompleted") or row.get("date_completed")),
                overall_time=row.get("overallTime", row.get("overall_time")),
                performance_data=row.get("performanceData") or row.get("performance_data") or {},
                fitness_level=row.get("fitnessLevel") or details.get("fitnessLevel"),
                workout_id=row.get("workoutId", row.get("workout_id")),
            )

        workout = getattr(row, "workout", None)
        details = (getattr(workout, "workout_details", None) or {}) if workout is not None else {}
        return cls(
            id=row.id,
            date_completed=row.date_completed,
            overall_time=row.overall_time,
            performance_data=row.performance_data or {},
            fitness_level=details.get("fitnessLevel"),
            workout_id=row.workout_id,
        )

    @property
    def reference_id(self) -> Any:
        return self.workout_id if self.workout_id is not None else self.id

    @property
    def has_time(self) -> bool:
        return bool(self.overall_time)


@dataclass
class PersonalRecord:
    type: str
    name: str
    time: int
    achieved_at: datetime
    workout_id: Any
    improvement: Optional[int] = None

    @property
    def key(self) -> tuple:
        return (self.type, self.name)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "type": self.type,
            "name": self.name,
            "time": self.time,
            "timeFormatted": format_seconds(self.time),
            "achievedAt": self.achieved_at.isoformat(),
            "workoutId": self.workout_id,
        }
        if self.improvement is not None:
            data["improvement"] = self.improvement
        return data


@dataclass
class TrendDataPoint:
    date: str
    time: int
    workout_id: Any
    fitness_level: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "time": self.time,
            "timeFormatted": format_seconds(self.time),
            "workoutId": self.workout_id,
            "fitnessLevel": self.fitness_level,
        }


def _chronological(logs: Iterable[LogRecord]) -> List[LogRecord]:
    return sorted(logs, key=lambda log: log.date_completed)


def _local_date(moment: datetime) -> date:
    """Calendar date in local time; naive datetimes are taken as local already."""
    if isinstance(moment, datetime):
        if moment.tzinfo is not None:
            return moment.astimezone().date()
        return moment.date()
    return moment


# ---------------------------------------------------------------------------
# Personal records
# ---------------------------------------------------------------------------

class _RunningBest:
    """Running minimum per key; emits a record on strict improvement."""

    def __init__(self, record_type: str):
        self.record_type = record_type
        self.best: Dict[str, int] = {}

    def offer(self, name: str, seconds: int, log: LogRecord) -> Optional[PersonalRecord]:
        if seconds <= 0:
            return None
        previous = self.best.get(name)
        if previous is not None and seconds >= previous:
            return None
        self.best[name] = seconds
        return PersonalRecord(
            type=self.record_type,
            name=name,
            time=seconds,
            achieved_at=log.date_completed,
            workout_id=log.reference_id,
            improvement=(previous - seconds) if previous is not None else None,
        )


def personal_record_history(logs: Iterable[LogRecord]) -> List[PersonalRecord]:
    """
    Every PR event in the order it happened.

    Ties never set a new record. Logs without an overall time and splits that
    parse to zero are ignored.
    """
    overall = _RunningBest(RECORD_OVERALL)
    stations = _RunningBest(RECORD_STATION)
    runs = _RunningBest(RECORD_RUN)

    history: List[PersonalRecord] = []
    for log in _chronological(logs):
        if log.has_time:
            record = overall.offer(OVERALL_RECORD_NAME, int(log.overall_time), log)
            if record:
                history.append(record)

        performance = log.performance_data or {}
        for station in performance.get("stations") or []:
            name = station.get("name")
            if not name:
                continue
            record = stations.offer(name, parse_time(station.get("time")), log)
            if record:
                history.append(record)

        for run in performance.get("runs") or []:
            distance = run.get("distance")
            if not distance:
                continue
            record = runs.offer(distance, parse_time(run.get("time")), log)
            if record:
                history.append(record)

    return history


def detect_personal_records(logs: Iterable[LogRecord]) -> List[PersonalRecord]:
    """Current record per (type, name), most recently achieved first."""
    latest: Dict[tuple, PersonalRecord] = {}
    for record in personal_record_history(logs):
        latest[record.key] = record

    return sorted(latest.values(), key=lambda r: r.achieved_at, reverse=True)


def current_prs(logs: Iterable[LogRecord]) -> Dict[str, Any]:
    """Overall PR plus the most recent station PRs (profile summary card)."""
    records = detect_personal_records(logs)
    overall = next((r for r in records if r.type == RECORD_OVERALL), None)
    station_records = [r for r in records if r.type == RECORD_STATION][:CURRENT_STATION_PR_LIMIT]
    return {
        "overall": overall.to_dict() if overall else None,
        "stations": [r.to_dict() for r in station_records],
    }


# ---------------------------------------------------------------------------
# Trends
# ---------------------------------------------------------------------------

def _date_label(moment: datetime) -> str:
    local = _local_date(moment)
    return f"{local.strftime('%b')} {local.day}"


def prepare_trend_data(logs: Iterable[LogRecord], limit: int = DEFAULT_TREND_LIMIT) -> List[TrendDataPoint]:
    """The `limit` most recent logs, oldest first for charting."""
    if limit <= 0:
        return []

    recent = sorted(logs, key=lambda log: log.date_completed, reverse=True)[:limit]
    recent.reverse()

    return [
        TrendDataPoint(
            date=_date_label(log.date_completed),
            time=int(log.overall_time or 0),
            workout_id=log.reference_id,
            fitness_level=log.fitness_level,
        )
        for log in recent
    ]


def calculate_improvement(logs: Iterable[LogRecord]) -> Dict[str, Any]:
    """Change in overall time between the first and the latest timed log."""
    timed = [log for log in _chronological(logs) if log.has_time]
    if len(timed) < 2:
        return {"percentage": 0.0, "secondsImproved": 0, "direction": "neutral"}

    first = int(timed[0].overall_time)
    last = int(timed[-1].overall_time)
    seconds_improved = first - last

    if seconds_improved > 0:
        direction = "improved"
    elif seconds_improved < 0:
        direction = "declined"
    else:
        direction = "neutral"

    return {
        "percentage": round(abs(seconds_improved) / first * 100, 1),
        "secondsImproved": abs(seconds_improved),
        "direction": direction,
    }


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------

def calculate_streak(completed: Iterable[datetime], today: Optional[date] = None) -> int:
    """
    Consecutive training days ending today or yesterday.

    Multiple logs on one day count once. If the latest day is older than
    yesterday the streak is broken (0).
    """
    today = today or date.today()
    days = sorted({_local_date(moment) for moment in completed if moment is not None}, reverse=True)
    days = [d for d in days if d <= today]
    if not days:
        return 0

    if days[0] not in (today, today - timedelta(days=1)):
        return 0

    streak = 0
    expected = days[0]
    for day in days:
        if day != expected:
            break
        streak += 1
        expected = day - timedelta(days=1)
    return streak


def calculate_stats(logs: Iterable[LogRecord], today: Optional[date] = None) -> Dict[str, Any]:
    logs = list(logs)
    if not logs:
        return {
            "totalWorkouts": 0,
            "averageTime": None,
            "averageTimeFormatted": None,
            "bestTime": None,
            "bestTimeFormatted": None,
            "recentStreak": 0,
        }

    times = [int(log.overall_time) for log in logs if log.has_time]
    # Half-second means round up
    average = math.floor(sum(times) / len(times) + 0.5) if times else None
    best = min(times) if times else None

    return {
        "totalWorkouts": len(logs),
        "averageTime": average,
        "averageTimeFormatted": format_seconds(average) if average else None,
        "bestTime": best,
        "bestTimeFormatted": format_seconds(best) if best else None,
        "recentStreak": calculate_streak((log.date_completed for log in logs), today=today),
    }


def compute_analytics(
    logs: Iterable[Any],
    trend_limit: int = DEFAULT_TREND_LIMIT,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    """
    Records, trend, stats and improvement for a full log history.

    Accepts LogRecord instances, WorkoutLog rows or API-shaped dicts.
    """
    records = [log if isinstance(log, LogRecord) else LogRecord.from_row(log) for log in logs]
    records = [log for log in records if log.date_completed is not None]

    return {
        "records": [r.to_dict() for r in detect_personal_records(records)],
        "currentPRs": current_prs(records),
        "trend": [p.to_dict() for p in prepare_trend_data(records, trend_limit)],
        "stats": calculate_stats(records, today=today),
        "improvement": calculate_improvement(records),
    }

"""
Unit tests for the workout-type recommender.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

from services.workout_composer import WorkoutType
from services.workout_recommender import (
    LOOKBACK_DAYS,
    analyze_workout_mix,
    classify_workout,
    recommend_workout_type,
)

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def _details(runs, stations):
    return {
        "runs": [{"id": i + 1} for i in range(runs)],
        "stations": [{"id": i + 1} for i in range(stations)],
    }


STANDARD = _details(6, 6)
RECOVERY = _details(3, 3)
LONG_RUN = _details(10, 1)


def _fetch(workouts):
    return lambda user_id, since: [{"workout_details": d} for d in workouts]


class TestClassifyWorkout:

    def test_long_run(self):
        assert classify_workout(_details(8, 2)) == WorkoutType.LONG_RUN

    def test_recovery(self):
        assert classify_workout(_details(4, 4)) == WorkoutType.RECOVERY
        assert classify_workout(_details(2, 0)) == WorkoutType.RECOVERY

    def test_standard(self):
        assert classify_workout(_details(5, 4)) == WorkoutType.STANDARD
        assert classify_workout(_details(8, 3)) == WorkoutType.STANDARD

    def test_missing_details_is_standard(self):
        assert classify_workout(None) == WorkoutType.STANDARD
        assert classify_workout({}) == WorkoutType.STANDARD

    def test_orm_like_objects(self):
        row = MagicMock()
        row.workout_details = LONG_RUN
        assert analyze_workout_mix([row]).long_run_count == 1


class TestRecommendation:

    def test_no_history_is_none(self):
        assert recommend_workout_type("u1", _fetch([]), now=NOW) is None

    def test_fetch_failure_is_none(self):
        def broken(user_id, since):
            raise RuntimeError("database unavailable")

        assert recommend_workout_type("u1", broken, now=NOW) is None

    def test_recovery_when_none_recently(self):
        assert recommend_workout_type("u1", _fetch([STANDARD] * 5), now=NOW) == WorkoutType.RECOVERY

    def test_long_run_when_recovery_covered(self):
        # 1 of 6 recovery (>= 1/7), no long runs
        history = [RECOVERY] + [STANDARD] * 5
        assert recommend_workout_type("u1", _fetch(history), now=NOW) == WorkoutType.LONG_RUN

    def test_standard_when_balanced(self):
        history = [RECOVERY, LONG_RUN, LONG_RUN, STANDARD, STANDARD, STANDARD]
        assert recommend_workout_type("u1", _fetch(history), now=NOW) == WorkoutType.STANDARD

    def test_thresholds_are_exact(self):
        # Exactly 1/7 recovery and exactly 1/4 long run: both targets met
        history = [RECOVERY] * 4 + [LONG_RUN] * 7 + [STANDARD] * 17
        analysis = analyze_workout_mix([{"workout_details": d} for d in history])
        assert analysis.recovery_ratio == 1 / 7
        assert analysis.long_run_ratio == 1 / 4
        assert analysis.recommendation == WorkoutType.STANDARD

    def test_window_is_fourteen_days(self):
        fetch = MagicMock(return_value=[])
        recommend_workout_type("u1", fetch, now=NOW)
        fetch.assert_called_once_with("u1", NOW - timedelta(days=LOOKBACK_DAYS))


class TestAnalysis:

    def test_empty_message(self):
        analysis = analyze_workout_mix([])
        assert analysis.recommendation is None
        assert analysis.to_dict()["totalWorkouts"] == 0

    def test_counts_and_message(self):
        analysis = analyze_workout_mix([{"workout_details": d} for d in [STANDARD, STANDARD, LONG_RUN]])
        data = analysis.to_dict()
        assert data["standardCount"] == 2
        assert data["longRunCount"] == 1
        assert data["recommendation"] == "recovery"
        assert "1-in-7" in data["message"]

"""
Integration tests for the workouts and profile endpoints.

Runs against the in-memory SQLite database from conftest. AI generation is
switched off (or faked) through the get_ai_composer dependency.
"""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from main import app
from models import Workout, WorkoutLog
from routers.workouts import get_ai_composer
from services.ai_workout_composer import AIWorkoutComposer


client = TestClient(app)


@pytest.fixture(autouse=True)
def _rule_based_only():
    app.dependency_overrides[get_ai_composer] = lambda: AIWorkoutComposer(client=None)
    yield
    app.dependency_overrides.pop(get_ai_composer, None)


def _generate(auth_headers, **body):
    body.setdefault("fitnessLevel", "intermediate")
    return client.post("/v1/workouts/generate", json=body, headers=auth_headers)


class TestAuth:

    def test_missing_token_is_401(self):
        resp = client.post("/v1/workouts/generate", json={"fitnessLevel": "beginner"})
        assert resp.status_code == 401

    def test_garbage_token_is_401(self):
        resp = client.get("/v1/workouts/history", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401


class TestGenerate:

    def test_rule_based_generation_is_persisted(self, auth_headers, user_id, db_session):
        resp = _generate(auth_headers, mood="tired", duration=45)
        assert resp.status_code == 200
        data = resp.json()
        assert data["source"] == "rule-based"

        workout = data["workout"]
        assert workout["status"] == "pending"
        assert workout["source"] == "generated"
        assert workout["userId"] == user_id
        assert workout["workoutDetails"]["fitnessLevel"] == "intermediate"
        assert {r["distance"] for r in workout["workoutDetails"]["runs"]} == {"750m"}

        stored = db_session.query(Workout).filter(Workout.user_id == user_id).all()
        assert len(stored) == 1

    @pytest.mark.parametrize(
        "body",
        [
            {"mood": "ecstatic"},
            {"duration": 50},
            {"excludeStations": ["Tyre Flip"]},
            {"workoutType": "tempo"},
            {"fitnessLevel": "elite"},
        ],
    )
    def test_invalid_parameters_are_422(self, auth_headers, body):
        resp = _generate(auth_headers, **body)
        assert resp.status_code == 422
        assert "Expected one of" in resp.json()["detail"]

    def test_missing_level_without_profile_is_422(self, auth_headers):
        resp = client.post("/v1/workouts/generate", json={}, headers=auth_headers)
        assert resp.status_code == 422

    def test_ai_generation_reports_ai_source(self, auth_headers):
        payload = {
            "stations": [{"name": "SkiErg"}, {"name": "Rowing"}],
            "runs": [{"distance": "1km"}] * 4,
            "coachingNotes": "Smooth and steady.",
        }
        fake = MagicMock()
        fake.chat.completions.create.return_value = MagicMock(
            choices=[MagicMock(message=MagicMock(content=json.dumps(payload)))]
        )
        app.dependency_overrides[get_ai_composer] = lambda: AIWorkoutComposer(client=fake)

        resp = _generate(auth_headers)
        assert resp.status_code == 200
        data = resp.json()
        assert data["source"] == "ai"
        assert data["workout"]["source"] == "ai"
        assert data["workout"]["workoutDetails"]["coachingNotes"] == "Smooth and steady."

    def test_ai_failure_falls_back(self, auth_headers):
        fake = MagicMock()
        fake.chat.completions.create.side_effect = RuntimeError("upstream 500")
        app.dependency_overrides[get_ai_composer] = lambda: AIWorkoutComposer(client=fake)

        resp = _generate(auth_headers)
        assert resp.status_code == 200
        assert resp.json()["source"] == "rule-based"

    def test_profile_defaults_fill_request(self, auth_headers):
        resp = client.patch(
            "/v1/profile",
            json={"fitnessLevel": "advanced", "defaultDuration": 30, "excludedStations": ["SkiErg"]},
            headers=auth_headers,
        )
        assert resp.status_code == 200

        details = client.post("/v1/workouts/generate", json={}, headers=auth_headers).json()["workout"]["workoutDetails"]
        assert details["fitnessLevel"] == "advanced"
        assert details["duration"] == 30
        assert "SkiErg" not in {s["name"] for s in details["stations"]}


class TestLogAndHistory:

    def test_log_marks_workout_completed(self, auth_headers, db_session):
        workout_id = _generate(auth_headers).json()["workout"]["id"]
        resp = client.post(
            "/v1/workouts/log",
            json={
                "workoutId": workout_id,
                "overallTime": "1:05:30",
                "performanceData": {
                    "stations": [{"name": "SkiErg", "time": "04:30", "order": 1}],
                    "runs": [{"distance": "1km", "time": "05:00", "order": 0}],
                },
                "notes": "Legs heavy",
            },
            headers=auth_headers,
        )
        assert resp.status_code == 201
        data = resp.json()
        assert data["overallTime"] == 3930
        assert data["overallTimeFormatted"] == "1:05:30"
        assert data["performanceData"]["stations"] == [{"name": "SkiErg", "time": "04:30", "order": 1}]
        assert data["performanceData"]["runs"] == [{"distance": "1km", "time": "05:00", "order": 0}]

        assert client.get(f"/v1/workouts/{workout_id}", headers=auth_headers).json()["status"] == "completed"

    def test_overall_time_summed_from_splits_when_missing(self, auth_headers):
        workout_id = _generate(auth_headers).json()["workout"]["id"]
        resp = client.post(
            "/v1/workouts/log",
            json={
                "workoutId": workout_id,
                "performanceData": {
                    "stations": [{"name": "Rowing", "time": "04:00"}],
                    "runs": [{"distance": "1km", "time": "05:00"}],
                },
            },
            headers=auth_headers,
        )
        assert resp.json()["overallTime"] == 540

    def test_logging_someone_elses_workout_is_404(self, auth_headers):
        from core.security import create_access_token

        other_headers = {"Authorization": f"Bearer {create_access_token({'sub': 'someone-else'})}"}
        workout_id = _generate(other_headers).json()["workout"]["id"]
        resp = client.post("/v1/workouts/log", json={"workoutId": workout_id}, headers=auth_headers)
        assert resp.status_code == 404

    def test_history_with_stats(self, auth_headers):
        for overall in ("1:00:00", "55:00"):
            workout_id = _generate(auth_headers).json()["workout"]["id"]
            client.post(
                "/v1/workouts/log",
                json={"workoutId": workout_id, "overallTime": overall},
                headers=auth_headers,
            )

        resp = client.get("/v1/workouts/history?limit=1", headers=auth_headers)
        assert resp.status_code == 200
        data = resp.json()
        assert data["total"] == 2
        assert len(data["items"]) == 1
        assert data["items"][0]["fitnessLevel"] == "intermediate"
        assert data["stats"]["totalWorkouts"] == 2
        assert data["stats"]["bestTime"] == 3300


class TestAnalyticsEndpoint:

    def test_empty_analytics(self, auth_headers):
        resp = client.get("/v1/workouts/analytics", headers=auth_headers)
        assert resp.status_code == 200
        data = resp.json()
        assert data["records"] == []
        assert data["stats"]["totalWorkouts"] == 0

    def test_records_from_logs(self, auth_headers):
        base = datetime(2026, 10, 1, 7, 0, tzinfo=timezone.utc)
        for day, overall in enumerate(("1:00:00", "58:00")):
            workout_id = _generate(auth_headers).json()["workout"]["id"]
            client.post(
                "/v1/workouts/log",
                json={
                    "workoutId": workout_id,
                    "overallTime": overall,
                    "dateCompleted": (base + timedelta(days=day)).isoformat(),
                },
                headers=auth_headers,
            )

        data = client.get("/v1/workouts/analytics", headers=auth_headers).json()
        overall = [r for r in data["records"] if r["type"] == "overall"]
        assert len(overall) == 1
        assert overall[0]["time"] == 3480
        assert overall[0]["improvement"] == 120
        assert [p["time"] for p in data["trend"]] == [3600, 3480]


class TestRecommendEndpoint:

    def test_no_history(self, auth_headers):
        data = client.get("/v1/workouts/recommend", headers=auth_headers).json()
        assert data["recommendation"] is None
        assert data["analysis"]["totalWorkouts"] == 0

    def test_standard_history_recommends_recovery(self, auth_headers):
        for _ in range(3):
            _generate(auth_headers, workoutType="long_run")
        data = client.get("/v1/workouts/recommend", headers=auth_headers).json()
        assert data["recommendation"] == "recovery"
        assert data["analysis"]["longRunCount"] == 3


class TestCustomWorkouts:

    def test_create_and_list(self, auth_headers):
        resp = client.post(
            "/v1/workouts/custom",
            json={
                "workoutName": "Sled Day",
                "tags": ["strength"],
                "fitnessLevel": "advanced",
                "stations": [{"name": "Sled Push"}, {"name": "Sled Pull", "weight": "90kg"}],
                "runs": [{"distance": "400m"}, {"distance": "400m"}],
            },
            headers=auth_headers,
        )
        assert resp.status_code == 201
        created = resp.json()
        assert created["source"] == "user_created"
        stations = created["workoutDetails"]["stations"]
        assert stations[0]["weight"] == "152kg"
        assert stations[1]["weight"] == "90kg"

        listed = client.get("/v1/workouts/custom", headers=auth_headers).json()
        assert [w["workoutName"] for w in listed] == ["Sled Day"]

    def test_unknown_station_is_422(self, auth_headers):
        resp = client.post(
            "/v1/workouts/custom",
            json={"workoutName": "Odd", "stations": [{"name": "Tyre Flip"}]},
            headers=auth_headers,
        )
        assert resp.status_code == 422


class TestWorkoutCrud:

    def test_patch_and_delete(self, auth_headers, user_id, db_session):
        workout_id = _generate(auth_headers).json()["workout"]["id"]
        client.post("/v1/workouts/log", json={"workoutId": workout_id, "overallTime": "50:00"}, headers=auth_headers)

        resp = client.patch(
            f"/v1/workouts/{workout_id}",
            json={"status": "skipped", "description": "Moved to tomorrow"},
            headers=auth_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "skipped"
        assert resp.json()["description"] == "Moved to tomorrow"

        assert client.delete(f"/v1/workouts/{workout_id}", headers=auth_headers).status_code == 204
        assert client.get(f"/v1/workouts/{workout_id}", headers=auth_headers).status_code == 404
        assert db_session.query(WorkoutLog).filter(WorkoutLog.user_id == user_id).count() == 0

    def test_invalid_status_is_422(self, auth_headers):
        workout_id = _generate(auth_headers).json()["workout"]["id"]
        resp = client.patch(f"/v1/workouts/{workout_id}", json={"status": "abandoned"}, headers=auth_headers)
        assert resp.status_code == 422


class TestProfile:

    def test_defaults_when_unset(self, auth_headers, user_id):
        data = client.get("/v1/profile", headers=auth_headers).json()
        assert data["userId"] == user_id
        assert data["fitnessLevel"] == "beginner"

    def test_invalid_mood_is_422(self, auth_headers):
        resp = client.patch("/v1/profile", json={"defaultMood": "grumpy"}, headers=auth_headers)
        assert resp.status_code == 422


def test_health_and_ping():
    assert client.get("/ping").json() == {"pong": True}
    assert client.get("/health").json()["status"] == "healthy"


class TestEditNotes:

    def test_patch_notes_updates_logs(self, auth_headers):
        workout_id = _generate(auth_headers).json()["workout"]["id"]
        client.post(
            "/v1/workouts/log",
            json={"workoutId": workout_id, "overallTime": "50:00", "notes": "old"},
            headers=auth_headers,
        )

        resp = client.patch(f"/v1/workouts/{workout_id}", json={"notes": "new"}, headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["status"] == "completed"

        items = client.get("/v1/workouts/history", headers=auth_headers).json()["items"]
        assert [item["notes"] for item in items] == ["new"]

    def test_notes_without_logs_is_harmless(self, auth_headers):
        workout_id = _generate(auth_headers).json()["workout"]["id"]
        resp = client.patch(f"/v1/workouts/{workout_id}", json={"notes": "later"}, headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["status"] == "pending"


def test_ai_composer_dependency_is_shared():
    get_ai_composer.cache_clear()
    try:
        assert get_ai_composer() is get_ai_composer()
    finally:
        get_ai_composer.cache_clear()

"""
Unit tests for the AI workout composer.

The OpenAI client is a MagicMock; no network calls are made.
"""

import json
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from services.ai_workout_composer import (
    AIWorkoutComposer,
    InspirationWorkout,
    build_workout_prompt,
    _extract_json_object,
)
from services.station_catalog import FitnessLevel
from services.workout_composer import GenerationParams, InvalidWorkoutParameters, validate_params

FIXED_NOW = datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc)


def _client_returning(content):
    client = MagicMock()
    message = MagicMock()
    message.content = content
    choice = MagicMock()
    choice.message = message
    client.chat.completions.create.return_value = MagicMock(choices=[choice])
    return client


def _valid_payload(**overrides):
    payload = {
        "stations": [
            {"id": 1, "name": "SkiErg", "distance": "1000m", "order": 1},
            {"id": 2, "name": "Sled Push", "distance": "50m", "weight": "999kg", "order": 3},
        ],
        "runs": [{"id": i + 1, "distance": "1km", "order": i * 2} for i in range(5)],
        "coachingNotes": "Keep the sled pushes steady.",
    }
    payload.update(overrides)
    return payload


def _composer(client):
    return AIWorkoutComposer(client=client, now=lambda: FIXED_NOW)


class TestAvailability:

    def test_no_client_returns_none_without_calling(self):
        composer = AIWorkoutComposer(client=None)
        assert composer.available is False
        assert composer.compose("beginner", "u1") is None

    def test_invalid_input_still_raises_without_client(self):
        with pytest.raises(InvalidWorkoutParameters):
            AIWorkoutComposer(client=None).compose("elite", "u1")


class TestSuccessfulResponse:

    def test_valid_response_becomes_workout(self):
        client = _client_returning(json.dumps(_valid_payload()))
        workout = _composer(client).compose("intermediate", "u1", GenerationParams(mood="fresh"))

        assert workout is not None
        assert [s.name for s in workout.stations] == ["SkiErg", "Sled Push"]
        assert len(workout.runs) == 5
        assert workout.coaching_notes == "Keep the sled pushes steady."
        assert workout.generated_at == FIXED_NOW
        assert workout.to_dict()["coachingNotes"] == "Keep the sled pushes steady."
        client.chat.completions.create.assert_called_once()

    def test_official_prescription_reapplied(self):
        """Model-invented weights never survive."""
        client = _client_returning(json.dumps(_valid_payload()))
        workout = _composer(client).compose("intermediate", "u1")
        sled_push = next(s for s in workout.stations if s.name == "Sled Push")
        assert sled_push.weight == "102kg"

    def test_missing_ids_and_orders_are_filled(self):
        payload = _valid_payload(
            stations=[{"name": "Rowing"}],
            runs=[{}, {}, {}, {}],
        )
        workout = _composer(_client_returning(json.dumps(payload))).compose("beginner", "u1", GenerationParams(duration=30))
        assert (workout.stations[0].id, workout.stations[0].order) == (1, 5)
        assert [(r.id, r.order, r.distance) for r in workout.runs] == [
            (1, 0, "500m"), (2, 2, "500m"), (3, 4, "500m"), (4, 6, "500m"),
        ]

    @pytest.mark.parametrize("order,expected", [(42, 5), (0, 5), (-1, 5), (3, 3)])
    def test_out_of_range_station_order_uses_race_position(self, order, expected):
        payload = _valid_payload(stations=[{"name": "Rowing", "order": order}])
        workout = _composer(_client_returning(json.dumps(payload))).compose("beginner", "u1")
        assert workout.stations[0].order == expected

    def test_json_wrapped_in_text_is_accepted(self):
        content = "Here you go:\n" + json.dumps(_valid_payload()) + "\nGood luck!"
        assert _composer(_client_returning(content)).compose("beginner", "u1") is not None


class TestRejectedResponses:
    """Every failure mode returns None so the caller can fall back."""

    @pytest.mark.parametrize(
        "content",
        [
            "",
            "not json at all",
            json.dumps({"runs": []}),
            json.dumps(_valid_payload(stations=[{"name": "Tyre Flip"}])),
            json.dumps(_valid_payload(stations="SkiErg")),
        ],
    )
    def test_malformed_output_returns_none(self, content):
        assert _composer(_client_returning(content)).compose("beginner", "u1") is None

    def test_excluded_station_returns_none(self):
        client = _client_returning(json.dumps(_valid_payload()))
        params = GenerationParams(exclude_stations=["SkiErg"])
        assert _composer(client).compose("beginner", "u1", params) is None

    def test_duplicate_station_returns_none(self):
        payload = _valid_payload(stations=[{"name": "SkiErg"}, {"name": "SkiErg"}])
        assert _composer(_client_returning(json.dumps(payload))).compose("beginner", "u1") is None

    def test_run_count_outside_type_range_returns_none(self):
        payload = _valid_payload(runs=[{"distance": "1km"}] * 12)
        params = GenerationParams(workout_type="recovery")
        assert _composer(_client_returning(json.dumps(payload))).compose("beginner", "u1", params) is None

    def test_api_error_returns_none(self):
        client = MagicMock()
        client.chat.completions.create.side_effect = TimeoutError("request timed out")
        assert _composer(client).compose("beginner", "u1") is None


class TestPrompt:

    def test_prompt_carries_constraints(self):
        resolved = validate_params(GenerationParams(exclude_stations=["Wall Balls"], workout_type="recovery", duration=30))
        inspiration = [InspirationWorkout(name="Sled Day", tags=["strength"], station_names=["Sled Push"])]
        prompt = build_workout_prompt(FitnessLevel.ADVANCED, resolved, inspiration)

        assert "MUST EXCLUDE these stations: Wall Balls" in prompt
        assert "between 2 and 4 runs of 500m" in prompt
        assert "152kg" in prompt
        assert "Sled Day [strength]: Sled Push" in prompt

    def test_model_call_uses_json_mode(self):
        client = _client_returning(json.dumps(_valid_payload()))
        AIWorkoutComposer(client=client, model="gpt-test", timeout_s=5).compose("beginner", "u1")
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-test"
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["timeout"] == 5


class TestInspiration:

    def test_from_row(self):
        row = MagicMock()
        row.workout_name = "Engine Builder"
        row.tags = ["cardio"]
        row.workout_details = {"stations": [{"name": "SkiErg"}, {"name": "Rowing"}]}
        workout = InspirationWorkout.from_row(row)
        assert workout.name == "Engine Builder"
        assert workout.station_names == ["SkiErg", "Rowing"]


def test_extract_json_object_rejects_arrays():
    with pytest.raises(ValueError):
        _extract_json_object("[1, 2]")

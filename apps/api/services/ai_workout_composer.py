"""
AI Workout Composer

Asks an OpenAI chat model to design the session instead of the rule-based
composer. Best effort only:

- No OPENAI_API_KEY -> returns None without touching the network.
- Timeout, API error, bad JSON or a response that fails schema/business
  validation -> logged, returns None.

The caller falls back to the rule-based composer on None. We never retry
from here.

The model gets the same business rule as the rule-based path: vary the
volume (which stations, how many runs), never the official per-station
distances and weights. Prescriptions are re-applied from the catalog after
parsing so the persisted workout always matches official standards.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError

from core.config import settings
from services.station_catalog import (
    FitnessLevel,
    StationName,
    STATION_CATALOG,
    STATION_ORDER,
    get_prescription,
)
from services.workout_composer import (
    GenerationParams,
    Intensity,
    Mood,
    ResolvedParams,
    Run,
    Station,
    WorkoutDetails,
    WORKOUT_TYPE_CONFIGS,
    validate_fitness_level,
    validate_params,
)

from openai import OpenAI

logger = logging.getLogger(__name__)


MAX_INSPIRATION_WORKOUTS = 5

SYSTEM_PROMPT = (
    "You are an expert Hyrox trainer and workout designer. You create personalized, "
    "safe and effective Hyrox workouts based on the athlete's current state and goals. "
    "Always keep official Hyrox distances and weights. Adapt the session by choosing "
    "which stations to include and how many runs to do. Return ONLY valid JSON."
)

MOOD_DESCRIPTIONS = {
    Mood.FRESH: "feeling fresh, fully recovered, high energy",
    Mood.NORMAL: "feeling normal, ready for a standard workout",
    Mood.TIRED: "feeling tired, somewhat fatigued but can train",
    Mood.EXHAUSTED: "feeling exhausted, low energy, needs recovery-focused training",
}

INTENSITY_DESCRIPTIONS = {
    Intensity.LIGHT: "wants a light, recovery-focused session",
    Intensity.MODERATE: "wants a moderate, balanced session",
    Intensity.HARD: "wants a hard, challenging session",
    Intensity.BEAST: "wants a beast mode, maximum effort session",
}


# ---------------------------------------------------------------------------
# Response schema
# ---------------------------------------------------------------------------

class AIStation(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[int] = None
    name: StationName
    order: Optional[int] = None
    distance: Optional[str] = None
    weight: Optional[str] = None
    reps: Optional[str] = None


class AIRun(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[int] = None
    distance: Optional[str] = None
    order: Optional[int] = None


class AIWorkoutResponse(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    stations: List[AIStation]
    runs: List[AIRun]
    coaching_notes: Optional[str] = Field(default=None, alias="coachingNotes")


class AIResponseRejected(ValueError):
    """Model output parsed but breaks a workout rule."""


# ---------------------------------------------------------------------------
# Inspiration context
# ---------------------------------------------------------------------------

@dataclass
class InspirationWorkout:
    """A workout the athlete built themselves, used as style context."""
    name: str
    tags: List[str] = field(default_factory=list)
    station_names: List[str] = field(default_factory=list)

    @classmethod
    def from_row(cls, row: Any) -> "InspirationWorkout":
        details = getattr(row, "workout_details", None) or {}
        return cls(
            name=getattr(row, "workout_name", None) or "Untitled workout",
            tags=list(getattr(row, "tags", None) or []),
            station_names=[s.get("name") for s in details.get("stations") or [] if s.get("name")],
        )


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------

def _format_catalog(fitness_level: FitnessLevel) -> str:
    lines = []
    for station, prescription in STATION_CATALOG[fitness_level].items():
        parts = [p for p in (prescription.distance, prescription.reps and f"{prescription.reps} reps", prescription.weight) if p]
        lines.append(f"{STATION_ORDER[station]}. {station.value} - {', '.join(parts)}")
    return "\n".join(lines)


def _format_inspiration(inspiration: List[InspirationWorkout]) -> str:
    if not inspiration:
        return "- None yet"
    lines = []
    for workout in inspiration[:MAX_INSPIRATION_WORKOUTS]:
        tags = f" [{', '.join(workout.tags)}]" if workout.tags else ""
        stations = ", ".join(workout.station_names) or "runs only"
        lines.append(f"- {workout.name}{tags}: {stations}")
    return "\n".join(lines)


def build_workout_prompt(
    fitness_level: FitnessLevel,
    resolved: ResolvedParams,
    inspiration: Optional[List[InspirationWorkout]] = None,
) -> str:
    """Build the user prompt for the model."""
    config = resolved.type_config
    exclusions = (
        f"- MUST EXCLUDE these stations: {', '.join(s.value for s in resolved.exclude_stations)}"
        if resolved.exclude_stations
        else "- No station exclusions"
    )

    return f"""Generate a personalized Hyrox workout.

ATHLETE PROFILE:
- Fitness Level: {fitness_level.value}
- Current Mood/Energy: {MOOD_DESCRIPTIONS[resolved.mood]}
- Desired Intensity: {INTENSITY_DESCRIPTIONS[resolved.intensity]}
- Available Time: {resolved.duration} minutes
- Workout Type: {resolved.workout_type.value}

CONSTRAINTS:
{exclusions}
- Include between {config.station_count.min} and {config.station_count.max} stations (fewer only if exclusions leave fewer)
- Include between {config.run_count.min} and {config.run_count.max} runs of {resolved.run_distance} each
- Each station may appear at most once

OFFICIAL STATIONS FOR {fitness_level.value.upper()} (do NOT change distances, reps or weights):
{_format_catalog(fitness_level)}

ATHLETE'S OWN WORKOUTS (style inspiration):
{_format_inspiration(inspiration or [])}

YOUR TASK:
1. Choose how many stations and runs to include from the mood and intensity
2. Keep every station's official distance, reps and weight unchanged
3. Use the official station names exactly as listed
4. Explain the choices in one or two sentences of coaching notes

Return a JSON object:
{{
  "stations": [{{"id": 1, "name": "SkiErg", "distance": "1000m", "order": 1}}],
  "runs": [{{"id": 1, "distance": "{resolved.run_distance}", "order": 0}}],
  "coachingNotes": "string"
}}"""


def _extract_json_object(text: str) -> Dict[str, Any]:
    """First JSON object in the model output."""
    if not text:
        raise ValueError("Empty model response")

    try:
        parsed = json.loads(text)
        if isinstance(parsed, dict):
            return parsed
    except json.JSONDecodeError:
        pass

    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end <= start:
        raise ValueError("No JSON object found in model response")

    parsed = json.loads(text[start : end + 1])
    if not isinstance(parsed, dict):
        raise ValueError("Model response JSON is not an object")
    return parsed


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------

def _station_order(ai_station: AIStation) -> int:
    """Model-supplied order if it is a valid race position (1-8), else the canonical one."""
    if ai_station.order is not None and 1 <= ai_station.order <= len(STATION_ORDER):
        return ai_station.order
    return STATION_ORDER[ai_station.name]


def normalize_response(
    response: AIWorkoutResponse,
    fitness_level: FitnessLevel,
    resolved: ResolvedParams,
) -> tuple[List[Station], List[Run]]:
    """
    Enforce workout rules on a schema-valid response and fill in ids/orders.

    Raises:
        AIResponseRejected: excluded or duplicate stations, or volume outside
            the workout type's limits.
    """
    config = resolved.type_config
    excluded = set(resolved.exclude_stations)

    seen = set()
    for ai_station in response.stations:
        if ai_station.name in excluded:
            raise AIResponseRejected(f"Excluded station returned: {ai_station.name.value}")
        if ai_station.name in seen:
            raise AIResponseRejected(f"Duplicate station returned: {ai_station.name.value}")
        seen.add(ai_station.name)

    if len(response.stations) > config.station_count.max:
        raise AIResponseRejected(
            f"{len(response.stations)} stations exceeds {resolved.workout_type.value} limit of {config.station_count.max}"
        )
    if not config.run_count.min <= len(response.runs) <= config.run_count.max:
        raise AIResponseRejected(
            f"{len(response.runs)} runs outside {resolved.workout_type.value} range "
            f"{config.run_count.min}-{config.run_count.max}"
        )

    stations = []
    for index, ai_station in enumerate(response.stations):
        prescription = get_prescription(fitness_level, ai_station.name)
        stations.append(
            Station(
                id=ai_station.id or index + 1,
                name=ai_station.name.value,
                order=_station_order(ai_station),
                distance=prescription.distance,
                weight=prescription.weight,
                reps=prescription.reps,
            )
        )

    runs = [
        Run(
            id=ai_run.id or index + 1,
            order=ai_run.order if ai_run.order is not None else index * 2,
            distance=ai_run.distance or resolved.run_distance,
        )
        for index, ai_run in enumerate(response.runs)
    ]

    return stations, runs


# ---------------------------------------------------------------------------
# Composer
# ---------------------------------------------------------------------------

class AIWorkoutComposer:
    """
    Compose workouts with an OpenAI chat model.

    Usage:
        composer = AIWorkoutComposer(client=OpenAI(api_key=..., max_retries=0))
        workout = composer.compose("intermediate", user_id, params, inspiration)
        if workout is None:
            # fall back to compose_workout()
    """

    def __init__(
        self,
        client=None,
        model: str = "gpt-4o-mini",
        temperature: float = 0.7,
        max_tokens: int = 2000,
        timeout_s: float = 20.0,
        now: Optional[Callable[[], datetime]] = None,
    ):
        """
        Args:
            client: openai.OpenAI instance, or None when AI is not configured
        """
        self.client = client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout_s = timeout_s
        self._now = now or (lambda: datetime.now(timezone.utc))

    @property
    def available(self) -> bool:
        return self.client is not None

    def compose(
        self,
        fitness_level,
        user_id: Optional[str],
        params: Optional[GenerationParams] = None,
        inspiration: Optional[List[InspirationWorkout]] = None,
    ) -> Optional[WorkoutDetails]:
        """
        Returns the AI-designed workout, or None if the caller should fall back.

        Input validation errors still raise InvalidWorkoutParameters - bad
        input is not a backend failure.
        """
        level = validate_fitness_level(fitness_level)
        resolved = validate_params(params)

        if self.client is None:
            logger.warning("OPENAI_API_KEY not configured, falling back to rule-based generation")
            return None

        prompt = build_workout_prompt(level, resolved, inspiration)

        try:
            content, latency_ms = self._call_llm(prompt)
            payload = _extract_json_object(content)
            response = AIWorkoutResponse.model_validate(payload)
            stations, runs = normalize_response(response, level, resolved)
        except PydanticValidationError as e:
            logger.warning(f"AI workout response failed schema validation: {e.error_count()} errors")
            return None
        except AIResponseRejected as e:
            logger.warning(f"AI workout response rejected: {e}")
            return None
        except Exception as e:
            logger.error(f"AI workout generation failed: {type(e).__name__}: {e}")
            return None

        logger.info(
            f"AI workout generated in {latency_ms}ms",
            extra={"extra_fields": {"stations": len(stations), "runs": len(runs), "model": self.model}},
        )

        return WorkoutDetails(
            fitness_level=level,
            stations=stations,
            runs=runs,
            user_id=user_id,
            generated_at=self._now(),
            mood=resolved.mood,
            intensity=resolved.intensity,
            duration=resolved.duration,
            excluded_stations=resolved.exclude_stations,
            workout_type=resolved.workout_type,
            coaching_notes=response.coaching_notes,
        )

    def _call_llm(self, user_prompt: str) -> tuple[str, int]:
        """Single chat completion; returns (content, latency_ms)."""
        start = time.monotonic()
        completion = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": user_prompt},
            ],
            response_format={"type": "json_object"},
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            timeout=self.timeout_s,
        )
        latency_ms = int((time.monotonic() - start) * 1000)

        content = ""
        if completion.choices:
            content = completion.choices[0].message.content or ""
        return content, latency_ms


def build_ai_composer() -> AIWorkoutComposer:
    """Composer wired from settings; client is None when AI isn't configured."""
    client = None
    if settings.OPENAI_API_KEY:
        client = OpenAI(
            api_key=settings.OPENAI_API_KEY,
            timeout=settings.AI_WORKOUT_TIMEOUT_S,
            max_retries=0,
        )
    return AIWorkoutComposer(
        client=client,
        model=settings.AI_WORKOUT_MODEL,
        temperature=settings.AI_WORKOUT_TEMPERATURE,
        max_tokens=settings.AI_WORKOUT_MAX_TOKENS,
        timeout_s=settings.AI_WORKOUT_TIMEOUT_S,
    )

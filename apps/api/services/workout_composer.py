"""
Workout Composer (rule-based)

Builds a Hyrox-style workout - runs interleaved with functional stations -
from the athlete's fitness level and the session parameters.

Composition rules:
- Volume comes from the workout type. Station and run counts are drawn
  uniformly from the type's inclusive range (see WORKOUT_TYPE_CONFIGS).
- Excluded stations are removed first, then the first N remaining stations
  are kept in race order. Exclusions can leave fewer than N; that's fine.
- Run distance comes from the session duration.
- Station prescriptions are copied from the catalog untouched. Mood and
  intensity are recorded on the workout but never scale distances or weights
  (official standards).

Randomness is injected (random.Random) so a seeded source reproduces the
same workout.

This is also the fallback when AI generation is unavailable or fails.
"""
import logging
import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional

from services.station_catalog import (
    FitnessLevel,
    StationName,
    STATION_ORDER,
    get_prescription,
)

logger = logging.getLogger(__name__)


class Mood(str, Enum):
    FRESH = "fresh"
    NORMAL = "normal"
    TIRED = "tired"
    EXHAUSTED = "exhausted"


class Intensity(str, Enum):
    LIGHT = "light"
    MODERATE = "moderate"
    HARD = "hard"
    BEAST = "beast"


class WorkoutType(str, Enum):
    STANDARD = "standard"
    RECOVERY = "recovery"
    LONG_RUN = "long_run"


VALID_DURATIONS = (30, 45, 60, 90)

DEFAULT_MOOD = Mood.NORMAL
DEFAULT_INTENSITY = Intensity.MODERATE
DEFAULT_DURATION = 60
DEFAULT_WORKOUT_TYPE = WorkoutType.STANDARD


@dataclass(frozen=True)
class CountRange:
    min: int
    max: int

    def draw(self, rng: random.Random) -> int:
        return rng.randint(self.min, self.max)


@dataclass(frozen=True)
class WorkoutTypeConfig:
    run_count: CountRange
    station_count: CountRange
    target_duration: int  # minutes


WORKOUT_TYPE_CONFIGS: Dict[WorkoutType, WorkoutTypeConfig] = {
    WorkoutType.STANDARD: WorkoutTypeConfig(
        run_count=CountRange(4, 10), station_count=CountRange(4, 10), target_duration=60
    ),
    WorkoutType.RECOVERY: WorkoutTypeConfig(
        run_count=CountRange(2, 4), station_count=CountRange(2, 4), target_duration=30
    ),
    WorkoutType.LONG_RUN: WorkoutTypeConfig(
        run_count=CountRange(8, 12), station_count=CountRange(0, 2), target_duration=90
    ),
}

RUN_DISTANCE_BY_DURATION: Dict[int, str] = {
    30: "500m",
    45: "750m",
    60: "1km",
    90: "1.5km",
}


class InvalidWorkoutParameters(ValueError):
    """Generation request can't be satisfied as given (client error)."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


@dataclass
class GenerationParams:
    mood: Optional[str] = None
    intensity: Optional[str] = None
    duration: Optional[int] = None
    workout_type: Optional[str] = None
    exclude_stations: List[str] = field(default_factory=list)
    surprise_me: bool = False


@dataclass
class ResolvedParams:
    """GenerationParams after validation and defaults."""
    mood: Mood
    intensity: Intensity
    duration: int
    workout_type: WorkoutType
    exclude_stations: List[StationName]

    @property
    def run_distance(self) -> str:
        return RUN_DISTANCE_BY_DURATION[self.duration]

    @property
    def type_config(self) -> WorkoutTypeConfig:
        return WORKOUT_TYPE_CONFIGS[self.workout_type]


@dataclass
class Station:
    id: int
    name: str
    order: int
    distance: Optional[str] = None
    weight: Optional[str] = None
    reps: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"id": self.id, "name": self.name, "order": self.order}
        for key in ("distance", "weight", "reps"):
            value = getattr(self, key)
            if value:
                data[key] = value
        return data


@dataclass
class Run:
    id: int
    order: int
    distance: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "order": self.order, "distance": self.distance}


@dataclass
class WorkoutDetails:
    fitness_level: FitnessLevel
    stations: List[Station]
    runs: List[Run]
    user_id: Optional[str]
    generated_at: datetime
    mood: Optional[Mood] = None
    intensity: Optional[Intensity] = None
    duration: Optional[int] = None
    excluded_stations: List[StationName] = field(default_factory=list)
    workout_type: Optional[WorkoutType] = None
    coaching_notes: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """JSON document persisted as workout_details."""
        data: Dict[str, Any] = {
            "fitnessLevel": self.fitness_level.value,
            "stations": [s.to_dict() for s in self.stations],
            "runs": [r.to_dict() for r in self.runs],
            "userId": self.user_id,
            "generatedAt": self.generated_at.isoformat(),
        }
        if self.mood is not None:
            data["mood"] = self.mood.value
        if self.intensity is not None:
            data["intensity"] = self.intensity.value
        if self.duration is not None:
            data["duration"] = self.duration
        if self.excluded_stations:
            data["excludedStations"] = [s.value for s in self.excluded_stations]
        if self.workout_type is not None:
            data["workoutType"] = self.workout_type.value
        if self.coaching_notes:
            data["coachingNotes"] = self.coaching_notes
        return data


def _coerce(enum_cls, value, field_name: str, default):
    if value is None or value == "":
        return default
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise InvalidWorkoutParameters(field_name, f"Invalid {field_name} '{value}'. Expected one of: {allowed}")


def validate_fitness_level(fitness_level) -> FitnessLevel:
    if fitness_level is None or fitness_level == "":
        raise InvalidWorkoutParameters("fitness_level", "fitness_level is required")
    return _coerce(FitnessLevel, fitness_level, "fitness_level", None)


def validate_params(params: Optional[GenerationParams]) -> ResolvedParams:
    """
    Validate and apply defaults. Unrecognized values raise rather than fall
    back to a default - the caller sent something we don't support.
    """
    params = params or GenerationParams()

    duration = params.duration if params.duration is not None else DEFAULT_DURATION
    if isinstance(duration, bool) or duration not in VALID_DURATIONS:
        raise InvalidWorkoutParameters(
            "duration",
            f"Invalid duration '{params.duration}'. Expected one of: {', '.join(map(str, VALID_DURATIONS))}",
        )

    excluded: List[StationName] = []
    for name in params.exclude_stations or []:
        station = _coerce(StationName, name, "exclude_stations", None)
        if station is not None and station not in excluded:
            excluded.append(station)

    return ResolvedParams(
        mood=_coerce(Mood, params.mood, "mood", DEFAULT_MOOD),
        intensity=_coerce(Intensity, params.intensity, "intensity", DEFAULT_INTENSITY),
        duration=int(duration),
        workout_type=_coerce(WorkoutType, params.workout_type, "workout_type", DEFAULT_WORKOUT_TYPE),
        exclude_stations=excluded,
    )


def resolve_surprise(params: GenerationParams, rng: random.Random) -> GenerationParams:
    """Replace mood and intensity with random picks and clear the flag."""
    if not params.surprise_me:
        return params
    return GenerationParams(
        mood=rng.choice(list(Mood)).value,
        intensity=rng.choice(list(Intensity)).value,
        duration=params.duration,
        workout_type=params.workout_type,
        exclude_stations=list(params.exclude_stations or []),
        surprise_me=False,
    )


def select_stations(
    fitness_level: FitnessLevel,
    exclude: Iterable[StationName],
    count: int,
) -> List[Station]:
    """First `count` non-excluded stations in race order, with catalog prescriptions."""
    excluded = set(exclude)
    available = [s for s in StationName if s not in excluded]

    stations = []
    for station in available[:max(0, count)]:
        prescription = get_prescription(fitness_level, station)
        order = STATION_ORDER[station]
        stations.append(
            Station(
                id=order,
                name=station.value,
                order=order,
                distance=prescription.distance,
                weight=prescription.weight,
                reps=prescription.reps,
            )
        )
    return stations


def build_runs(count: int, distance: str) -> List[Run]:
    """Runs alternate with stations: orders 0, 2, 4, ..."""
    return [Run(id=i + 1, order=i * 2, distance=distance) for i in range(count)]


def compose_workout(
    fitness_level,
    user_id: Optional[str] = None,
    params: Optional[GenerationParams] = None,
    rng: Optional[random.Random] = None,
    now: Optional[Callable[[], datetime]] = None,
) -> WorkoutDetails:
    """
    Compose a workout with the rule-based algorithm.

    Raises:
        InvalidWorkoutParameters: unknown fitness level, mood, intensity,
            duration, workout type or station name.
    """
    rng = rng or random.Random()
    params = params or GenerationParams()
    level = validate_fitness_level(fitness_level)

    if params.surprise_me:
        return compose_workout(level, user_id, resolve_surprise(params, rng), rng=rng, now=now)

    resolved = validate_params(params)
    config = resolved.type_config

    run_count = config.run_count.draw(rng)
    station_count = config.station_count.draw(rng)

    stations = select_stations(level, resolved.exclude_stations, station_count)
    runs = build_runs(run_count, resolved.run_distance)

    logger.debug(
        f"Composed {resolved.workout_type.value} workout: "
        f"{len(stations)} stations, {len(runs)} x {resolved.run_distance}"
    )

    return WorkoutDetails(
        fitness_level=level,
        stations=stations,
        runs=runs,
        user_id=user_id,
        generated_at=(now or _utcnow)(),
        mood=resolved.mood,
        intensity=resolved.intensity,
        duration=resolved.duration,
        excluded_stations=resolved.exclude_stations,
        workout_type=resolved.workout_type,
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

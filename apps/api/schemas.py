from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from datetime import datetime
from uuid import UUID
from typing import Optional, List, Dict, Any, Literal, Union


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------

class GenerateWorkoutRequest(CamelModel):
    """
    Generation parameters. Values are checked by the composer, not here, so an
    unknown mood or station comes back as a 422 with the allowed values.
    """
    fitness_level: Optional[str] = None  # Falls back to the user's profile
    mood: Optional[str] = None
    intensity: Optional[str] = None
    duration: Optional[int] = None  # minutes: 30, 45, 60 or 90
    workout_type: Optional[str] = None
    exclude_stations: List[str] = Field(default_factory=list)
    surprise_me: bool = False


class WorkoutResponse(CamelModel):
    id: UUID
    user_id: str
    date_generated: datetime
    workout_details: Dict[str, Any]
    status: str
    source: str
    workout_name: Optional[str] = None
    description: Optional[str] = None
    tags: Optional[List[str]] = None
    created_at: Optional[datetime] = None


class GenerateWorkoutResponse(CamelModel):
    workout: WorkoutResponse
    source: str  # "ai" or "rule-based"


# ---------------------------------------------------------------------------
# Logging completed sessions
# ---------------------------------------------------------------------------

class StationSplit(CamelModel):
    name: str
    time: Optional[str] = None  # "MM:SS" or "H:MM:SS"
    order: Optional[int] = None


class RunSplit(CamelModel):
    distance: Optional[str] = None
    time: Optional[str] = None
    order: Optional[int] = None


class PerformanceData(CamelModel):
    stations: List[StationSplit] = Field(default_factory=list)
    runs: List[RunSplit] = Field(default_factory=list)


class LogWorkoutRequest(CamelModel):
    workout_id: UUID
    date_completed: Optional[datetime] = None
    performance_data: PerformanceData = Field(default_factory=PerformanceData)
    # "H:MM:SS" string or seconds; summed from splits when absent
    overall_time: Optional[Union[int, str]] = None
    notes: Optional[str] = None


class WorkoutLogResponse(CamelModel):
    id: UUID
    workout_id: UUID
    user_id: str
    date_completed: datetime
    performance_data: Optional[Dict[str, Any]] = None
    overall_time: Optional[int] = None
    overall_time_formatted: Optional[str] = None
    notes: Optional[str] = None


class HistoryEntry(WorkoutLogResponse):
    workout_details: Optional[Dict[str, Any]] = None
    fitness_level: Optional[str] = None


class HistoryResponse(CamelModel):
    items: List[HistoryEntry]
    total: int
    limit: int
    offset: int
    stats: Dict[str, Any]


# ---------------------------------------------------------------------------
# Recommendation
# ---------------------------------------------------------------------------

class RecommendationResponse(CamelModel):
    recommendation: Optional[str] = None
    analysis: Dict[str, Any]


# ---------------------------------------------------------------------------
# User-created workouts
# ---------------------------------------------------------------------------

class CustomStation(CamelModel):
    name: str
    distance: Optional[str] = None
    weight: Optional[str] = None
    reps: Optional[str] = None


class CustomRun(CamelModel):
    distance: str


class CustomWorkoutCreate(CamelModel):
    workout_name: str = Field(min_length=1)
    description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    fitness_level: Optional[str] = None
    stations: List[CustomStation] = Field(default_factory=list)
    runs: List[CustomRun] = Field(default_factory=list)


class WorkoutUpdate(CamelModel):
    status: Optional[Literal["pending", "completed", "skipped"]] = None
    workout_name: Optional[str] = None
    description: Optional[str] = None
    tags: Optional[List[str]] = None
    workout_details: Optional[Dict[str, Any]] = None
    notes: Optional[str] = None  # applied to the workout's logs


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------

class ProfileUpdate(CamelModel):
    fitness_level: Optional[str] = None
    goals: Optional[str] = None
    default_mood: Optional[str] = None
    default_intensity: Optional[str] = None
    default_duration: Optional[int] = None
    excluded_stations: Optional[List[str]] = None


class ProfileResponse(CamelModel):
    user_id: str
    fitness_level: str
    goals: Optional[str] = None
    default_mood: Optional[str] = None
    default_intensity: Optional[str] = None
    default_duration: Optional[int] = None
    excluded_stations: Optional[List[str]] = None
    updated_at: Optional[datetime] = None

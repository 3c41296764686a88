"""
Workouts API Router

Generate, log, review and manage Hyrox workouts.

Handlers stay thin: all workout rules live in services/. Generation tries the
AI composer first and falls back to the rule-based composer; the response says
which one produced the workout.
"""
import logging
from functools import lru_cache
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from core.auth import get_current_user_id
from core.database import get_db
from core.exceptions import NotFoundError, ValidationError
from models import UserProfile, Workout, WorkoutLog
from schemas import (
    CustomWorkoutCreate,
    GenerateWorkoutRequest,
    GenerateWorkoutResponse,
    HistoryEntry,
    HistoryResponse,
    LogWorkoutRequest,
    RecommendationResponse,
    WorkoutLogResponse,
    WorkoutResponse,
    WorkoutUpdate,
)
from services.ai_workout_composer import (
    AIWorkoutComposer,
    InspirationWorkout,
    MAX_INSPIRATION_WORKOUTS,
    build_ai_composer,
)
from services.station_catalog import StationName, get_prescription
from services.time_codec import format_seconds, parse_time, sum_segment_times
from services.workout_analytics import LogRecord, calculate_stats, compute_analytics
from services.workout_composer import (
    GenerationParams,
    InvalidWorkoutParameters,
    validate_fitness_level,
)
from services.workout_generation import SOURCE_AI, generate_workout
from services.workout_recommender import analyze_workout_mix, recommend_workout_type

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/workouts", tags=["workouts"])


@lru_cache(maxsize=1)
def get_ai_composer() -> AIWorkoutComposer:
    """One composer (and OpenAI client) per process. Overridable via app.dependency_overrides."""
    return build_ai_composer()


def _get_owned_workout(db: Session, workout_id: UUID, user_id: str) -> Workout:
    workout = db.query(Workout).filter(Workout.id == workout_id, Workout.user_id == user_id).first()
    if not workout:
        raise NotFoundError("Workout", str(workout_id))
    return workout


def _get_profile(db: Session, user_id: str) -> Optional[UserProfile]:
    return db.query(UserProfile).filter(UserProfile.user_id == user_id).first()


def _generation_params(request: GenerateWorkoutRequest, profile: Optional[UserProfile]) -> GenerationParams:
    """Request values win; profile defaults fill the gaps."""
    return GenerationParams(
        mood=request.mood or (profile.default_mood if profile else None),
        intensity=request.intensity or (profile.default_intensity if profile else None),
        duration=request.duration if request.duration is not None else (profile.default_duration if profile else None),
        workout_type=request.workout_type,
        exclude_stations=list(request.exclude_stations or (profile.excluded_stations if profile else None) or []),
        surprise_me=request.surprise_me,
    )


def _load_inspiration(db: Session, user_id: str) -> List[InspirationWorkout]:
    rows = (
        db.query(Workout)
        .filter(Workout.user_id == user_id, Workout.source == "user_created")
        .order_by(Workout.created_at.desc())
        .limit(MAX_INSPIRATION_WORKOUTS)
        .all()
    )
    return [InspirationWorkout.from_row(row) for row in rows]


def _log_response(log: WorkoutLog) -> Dict[str, Any]:
    return {
        "id": log.id,
        "workout_id": log.workout_id,
        "user_id": log.user_id,
        "date_completed": log.date_completed,
        "performance_data": log.performance_data,
        "overall_time": log.overall_time,
        "overall_time_formatted": format_seconds(log.overall_time) if log.overall_time else None,
        "notes": log.notes,
    }


def _user_logs(db: Session, user_id: str) -> List[WorkoutLog]:
    return (
        db.query(WorkoutLog)
        .filter(WorkoutLog.user_id == user_id)
        .order_by(WorkoutLog.date_completed.desc())
        .all()
    )


@router.post("/generate", response_model=GenerateWorkoutResponse)
def generate(
    request: GenerateWorkoutRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    ai_composer: AIWorkoutComposer = Depends(get_ai_composer),
):
    """
    Generate and save a new workout (status: pending).

    fitnessLevel falls back to the user's profile. Unknown values for any
    parameter return 422 listing the accepted values.
    """
    profile = _get_profile(db, user_id)
    fitness_level = request.fitness_level or (profile.fitness_level if profile else None)
    params = _generation_params(request, profile)
    inspiration = _load_inspiration(db, user_id) if ai_composer.available else None

    try:
        result = generate_workout(
            fitness_level,
            user_id,
            params,
            ai_composer=ai_composer,
            inspiration=inspiration,
        )
    except InvalidWorkoutParameters as e:
        raise ValidationError(e.message, field=e.field)

    workout = Workout(
        user_id=user_id,
        date_generated=result.workout.generated_at,
        workout_details=result.workout.to_dict(),
        status="pending",
        source="ai" if result.source == SOURCE_AI else "generated",
    )
    db.add(workout)
    db.commit()
    db.refresh(workout)

    logger.info(
        f"Generated workout {workout.id} via {result.source}",
        extra={"extra_fields": {"user_id": user_id, "source": result.source}},
    )
    return {"workout": WorkoutResponse.model_validate(workout), "source": result.source}


@router.post("/log", response_model=WorkoutLogResponse, status_code=status.HTTP_201_CREATED)
def log_workout(
    request: LogWorkoutRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Record a completed workout and mark it completed.

    overallTime may be "H:MM:SS"/"MM:SS" or seconds; when missing (or
    unparseable) it is the sum of the split times.
    """
    workout = _get_owned_workout(db, request.workout_id, user_id)
    performance = request.performance_data.model_dump(exclude_none=True)

    overall = request.overall_time
    if isinstance(overall, str):
        overall = parse_time(overall)
    if not overall or overall < 0:
        overall = sum_segment_times(performance)

    log = WorkoutLog(
        workout_id=workout.id,
        user_id=user_id,
        date_completed=request.date_completed or datetime.now(timezone.utc),
        performance_data=performance,
        overall_time=overall or None,
        notes=request.notes,
    )
    workout.status = "completed"
    db.add(log)
    db.commit()
    db.refresh(log)

    return _log_response(log)


@router.get("/history", response_model=HistoryResponse)
def history(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Completed workouts, newest first, with summary stats over all of them."""
    logs = _user_logs(db, user_id)

    items = []
    for log in logs[offset:offset + limit]:
        details = log.workout.workout_details if log.workout else None
        entry = _log_response(log)
        entry["workout_details"] = details
        entry["fitness_level"] = (details or {}).get("fitnessLevel")
        items.append(HistoryEntry.model_validate(entry))

    return {
        "items": items,
        "total": len(logs),
        "limit": limit,
        "offset": offset,
        "stats": calculate_stats([LogRecord.from_row(log) for log in logs]),
    }


@router.get("/analytics")
def analytics(
    trend_limit: int = Query(10, ge=1, le=100, alias="trendLimit"),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Personal records, progress trend, stats and improvement."""
    return compute_analytics(_user_logs(db, user_id), trend_limit=trend_limit)


@router.get("/recommend", response_model=RecommendationResponse)
def recommend(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Suggested workout type from the last 14 days of workouts."""
    window: List[Workout] = []

    def fetch_recent_workouts(uid: str, since: datetime) -> List[Workout]:
        rows = (
            db.query(Workout)
            .filter(Workout.user_id == uid, Workout.date_generated >= since)
            .all()
        )
        window.extend(rows)
        return rows

    recommendation = recommend_workout_type(user_id, fetch_recent_workouts)
    analysis = analyze_workout_mix(window)

    return {
        "recommendation": recommendation.value if recommendation else None,
        "analysis": analysis.to_dict(),
    }


@router.post("/custom", response_model=WorkoutResponse, status_code=status.HTTP_201_CREATED)
def create_custom_workout(
    request: CustomWorkoutCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Save a user-built workout.

    These are also fed to the AI composer as style inspiration. Missing
    prescriptions are filled from the catalog for the given level.
    """
    try:
        level = validate_fitness_level(
            request.fitness_level or getattr(_get_profile(db, user_id), "fitness_level", None) or "beginner"
        )
        station_names = [StationName(s.name) for s in request.stations]
    except InvalidWorkoutParameters as e:
        raise ValidationError(e.message, field=e.field)
    except ValueError as e:
        raise ValidationError(str(e), field="stations")

    stations = []
    for index, (station, name) in enumerate(zip(request.stations, station_names)):
        prescription = get_prescription(level, name)
        entry = {"id": index + 1, "name": name.value, "order": index * 2 + 1}
        for key in ("distance", "weight", "reps"):
            value = getattr(station, key) or getattr(prescription, key)
            if value:
                entry[key] = value
        stations.append(entry)

    now = datetime.now(timezone.utc)
    details = {
        "fitnessLevel": level.value,
        "stations": stations,
        "runs": [
            {"id": index + 1, "order": index * 2, "distance": run.distance}
            for index, run in enumerate(request.runs)
        ],
        "userId": user_id,
        "generatedAt": now.isoformat(),
    }

    workout = Workout(
        user_id=user_id,
        date_generated=now,
        workout_details=details,
        status="pending",
        source="user_created",
        workout_name=request.workout_name,
        description=request.description,
        tags=request.tags,
    )
    db.add(workout)
    db.commit()
    db.refresh(workout)
    return workout


@router.get("/custom", response_model=List[WorkoutResponse])
def list_custom_workouts(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return (
        db.query(Workout)
        .filter(Workout.user_id == user_id, Workout.source == "user_created")
        .order_by(Workout.created_at.desc())
        .all()
    )


@router.get("/{workout_id}", response_model=WorkoutResponse)
def get_workout(
    workout_id: UUID,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return _get_owned_workout(db, workout_id, user_id)


@router.patch("/{workout_id}", response_model=WorkoutResponse)
def update_workout(
    workout_id: UUID,
    update: WorkoutUpdate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Partial update: only fields present in the body are changed."""
    workout = _get_owned_workout(db, workout_id, user_id)

    changes = update.model_dump(exclude_unset=True)
    if "notes" in changes:
        # Notes live on the completion log(s), not the workout
        notes = changes.pop("notes")
        for log in workout.logs:
            log.notes = notes

    for key, value in changes.items():
        if value is None and key in ("status", "workout_details"):
            continue  # non-nullable
        setattr(workout, key, value)

    db.commit()
    db.refresh(workout)
    return workout


@router.delete("/{workout_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_workout(
    workout_id: UUID,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Delete a workout and its logs."""
    workout = _get_owned_workout(db, workout_id, user_id)
    db.delete(workout)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)

"""
Profile API Router

Per-user generation defaults: fitness level, preferred mood/intensity/duration
and stations to always leave out. /v1/workouts/generate falls back to these
when a request omits them.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.auth import get_current_user_id
from core.database import get_db
from core.exceptions import ValidationError
from models import UserProfile
from schemas import ProfileResponse, ProfileUpdate
from services.station_catalog import FitnessLevel
from services.workout_composer import (
    GenerationParams,
    InvalidWorkoutParameters,
    validate_fitness_level,
    validate_params,
)

router = APIRouter(prefix="/v1/profile", tags=["profile"])


@router.get("", response_model=ProfileResponse)
def get_profile(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Stored profile, or defaults if the user never saved one."""
    profile = db.query(UserProfile).filter(UserProfile.user_id == user_id).first()
    if not profile:
        return ProfileResponse(user_id=user_id, fitness_level=FitnessLevel.BEGINNER.value, excluded_stations=[])
    return profile


@router.patch("", response_model=ProfileResponse)
def update_profile(
    update: ProfileUpdate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Create or partially update the profile. Values are validated like a generation request."""
    changes = update.model_dump(exclude_unset=True)

    try:
        if changes.get("fitness_level") is not None:
            changes["fitness_level"] = validate_fitness_level(changes["fitness_level"]).value
        resolved = validate_params(
            GenerationParams(
                mood=changes.get("default_mood"),
                intensity=changes.get("default_intensity"),
                duration=changes.get("default_duration"),
                exclude_stations=changes.get("excluded_stations") or [],
            )
        )
    except InvalidWorkoutParameters as e:
        raise ValidationError(e.message, field=e.field)

    if changes.get("excluded_stations") is not None:
        changes["excluded_stations"] = [s.value for s in resolved.exclude_stations]

    profile = db.query(UserProfile).filter(UserProfile.user_id == user_id).first()
    if not profile:
        profile = UserProfile(user_id=user_id, fitness_level=FitnessLevel.BEGINNER.value)
        db.add(profile)

    for key, value in changes.items():
        if key == "fitness_level" and value is None:
            continue
        setattr(profile, key, value)

    db.commit()
    db.refresh(profile)
    return profile

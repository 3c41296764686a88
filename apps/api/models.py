from sqlalchemy import Column, Integer, CheckConstraint, DateTime, ForeignKey, JSON, Text, Uuid, Index
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from core.database import Base
import uuid
from datetime import datetime, timezone

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB, "postgresql")

WORKOUT_STATUSES = ("pending", "completed", "skipped")
WORKOUT_SOURCES = ("generated", "ai", "user_created")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Workout(Base):
    """
    A generated or user-authored Hyrox session.

    workout_details holds the full document (fitnessLevel, stations, runs,
    generatedAt, ...) exactly as the composer produced it.
    """
    __tablename__ = "workouts"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    # Opaque identity from the auth token; no user table of our own
    user_id = Column(Text, nullable=False, index=True)
    date_generated = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    workout_details = Column(JSONType, nullable=False)
    status = Column(Text, nullable=False, default="pending")
    source = Column(Text, nullable=False, default="generated")

    # User-created workouts only
    workout_name = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    tags = Column(JSONType, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    logs = relationship(
        "WorkoutLog",
        back_populates="workout",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint("status IN ('pending', 'completed', 'skipped')", name="ck_workout_status"),
        CheckConstraint("source IN ('generated', 'ai', 'user_created')", name="ck_workout_source"),
        Index("ix_workouts_user_created", "user_id", "created_at"),
    )


class WorkoutLog(Base):
    """A completed session with its splits."""
    __tablename__ = "workout_logs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    workout_id = Column(Uuid(as_uuid=True), ForeignKey("workouts.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Text, nullable=False, index=True)
    date_completed = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    # {"stations": [{"name", "time"}], "runs": [{"distance", "time", "order"}]}
    performance_data = Column(JSONType, nullable=True)
    overall_time = Column(Integer, nullable=True)  # seconds
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    workout = relationship("Workout", back_populates="logs")

    __table_args__ = (
        Index("ix_workout_logs_user_completed", "user_id", "date_completed"),
    )


class UserProfile(Base):
    """Per-user generation defaults."""
    __tablename__ = "user_profiles"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, unique=True)
    fitness_level = Column(Text, nullable=False, default="beginner")
    goals = Column(Text, nullable=True)
    default_mood = Column(Text, nullable=True)
    default_intensity = Column(Text, nullable=True)
    default_duration = Column(Integer, nullable=True)  # minutes
    excluded_stations = Column(JSONType, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

from sqlalchemy import Column, Integer, CheckConstraint, Float, Date, DateTime, ForeignKey, Text, String, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from core.database import Base
import uuid
from datetime import datetime, timezone


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """
    Minimal user record the engine reads.

    Authentication, billing and profile management live elsewhere; the
    engine only needs existence and the optional stored training max.
    """
    __tablename__ = "app_user"

    id = Column(String(36), primary_key=True, default=_new_id)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    email = Column(Text, unique=True, nullable=True)
    display_name = Column(Text, nullable=True)
    training_max = Column(Float, nullable=True)  # kg, from the user's profile

    plans = relationship("Plan", back_populates="user")


class Exercise(Base):
    """Catalog entry. Reference data, never mutated by the engine."""
    __tablename__ = "exercise"

    id = Column(String(36), primary_key=True, default=_new_id)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    name = Column(Text, nullable=False)
    muscle_group = Column(Text, nullable=True)  # e.g. 'chest', 'legs', 'core'
    equipment = Column(Text, nullable=True)  # e.g. 'dumbbells', 'bodyweight'

    __table_args__ = (
        Index("ix_exercise_created_at", "created_at"),
        Index("ix_exercise_equipment", "equipment"),
    )


class Plan(Base):
    """
    A generated mesocycle for one user.

    Plans are never edited in place; a newer plan supersedes older ones.
    """
    __tablename__ = "plan"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(36), ForeignKey("app_user.id"), nullable=False)  # Index in __table_args__
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    goal = Column(Text, nullable=False)  # 'strength', 'hypertrophy', 'endurance'
    microcycle_length = Column(Integer, nullable=False)  # == weekly frequency
    mesocycle_weeks = Column(Integer, nullable=False)
    progression_rule = Column(Text, nullable=False)  # 'INTENSITY' or 'VOLUME'
    training_max = Column(Float, nullable=True)

    user = relationship("User", back_populates="plans")
    workouts = relationship(
        "Workout",
        back_populates="plan",
        order_by="Workout.sequence",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("ix_plan_user_created", "user_id", "created_at"),
    )


class Workout(Base):
    """
    One scheduled session of a plan.

    State: pending while completed_at is null; completed (terminal) once
    logWorkout sets it. Only scheduled_at changes while pending.
    """
    __tablename__ = "workout"

    id = Column(String(36), primary_key=True, default=_new_id)
    plan_id = Column(String(36), ForeignKey("plan.id"), nullable=False)  # Index in __table_args__
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    sequence = Column(Integer, nullable=False)  # week * frequency + day, creation order within the plan
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    scheduled_at = Column(Date, nullable=False)
    microcycle = Column(Integer, nullable=False)
    mesocycle = Column(Integer, nullable=False)
    rpe_target = Column(Float, nullable=False)
    rest_seconds = Column(Integer, nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    plan = relationship("Plan", back_populates="workouts")
    exercises = relationship(
        "WorkoutExercise",
        back_populates="workout",
        order_by="WorkoutExercise.order",
        cascade="all, delete-orphan",
    )
    sets = relationship("WorkoutSet", back_populates="workout", cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_workout_plan_id", "plan_id"),
        Index("ix_workout_plan_pending", "plan_id", "completed_at", "scheduled_at"),
        UniqueConstraint("plan_id", "sequence", name="uq_workout_plan_sequence"),
    )


class WorkoutExercise(Base):
    """Prescription for one exercise inside a workout. Immutable once created."""
    __tablename__ = "workout_exercise"

    id = Column(String(36), primary_key=True, default=_new_id)
    workout_id = Column(String(36), ForeignKey("workout.id"), nullable=False)
    exercise_id = Column(String(36), ForeignKey("exercise.id"), nullable=False)

    order = Column("order", Integer, nullable=False)  # 0-based, dense within the workout
    target_sets = Column(Integer, nullable=False)
    target_reps = Column(Integer, nullable=False)
    target_weight = Column(Float, nullable=True)  # only when history produced a progression
    rest_seconds = Column(Integer, nullable=False)
    rpe_target = Column(Float, nullable=False)
    microcycle = Column(Integer, nullable=False)
    mesocycle = Column(Integer, nullable=False)

    workout = relationship("Workout", back_populates="exercises")
    exercise = relationship("Exercise")

    __table_args__ = (
        Index("ix_workout_exercise_workout_id", "workout_id"),
        UniqueConstraint("workout_id", "order", name="uq_workout_exercise_order"),
    )


class WorkoutSet(Base):
    """A performed set. Append-only; written only when a workout is logged."""
    __tablename__ = "workout_set"

    id = Column(String(36), primary_key=True, default=_new_id)
    workout_id = Column(String(36), ForeignKey("workout.id"), nullable=False)
    exercise_id = Column(String(36), ForeignKey("exercise.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    weight = Column(Float, nullable=False)
    reps = Column(Integer, nullable=False)
    rpe = Column(Float, nullable=True)
    rir = Column(Integer, nullable=True)
    rest_seconds = Column(Integer, nullable=False)
    notes = Column(String(280), nullable=True)

    workout = relationship("Workout", back_populates="sets")

    __table_args__ = (
        Index("ix_workout_set_exercise_created", "exercise_id", "created_at"),
        Index("ix_workout_set_workout_id", "workout_id"),
        CheckConstraint("rpe IS NULL OR (rpe >= 5 AND rpe <= 10)", name="ck_workout_set_rpe"),
        CheckConstraint("rir IS NULL OR (rir >= 0 AND rir <= 5)", name="ck_workout_set_rir"),
        CheckConstraint("rest_seconds >= 30 AND rest_seconds <= 600", name="ck_workout_set_rest"),
    )


class AdherenceMetric(Base):
    """How closely a logged session matched its prescription (0..1). One per logged workout."""
    __tablename__ = "adherence_metric"

    id = Column(String(36), primary_key=True, default=_new_id)
    workout_id = Column(String(36), ForeignKey("workout.id"), nullable=False)
    plan_id = Column(String(36), ForeignKey("plan.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    adherence = Column(Float, nullable=False)

    __table_args__ = (
        UniqueConstraint("workout_id", name="uq_adherence_metric_workout"),
        Index("ix_adherence_metric_plan_id", "plan_id"),
        CheckConstraint("adherence >= 0 AND adherence <= 1", name="ck_adherence_metric_range"),
    )

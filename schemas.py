from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime, date
from typing import Optional, List

from services.plan_framework.constants import Goal, ProgressionRule, GOAL_ALIASES
from services.plan_framework.progression import ProgressionHistoryEntry


# ============ Plan creation ============

class UserTrainingProfile(BaseModel):
    """Caller-owned input to createPlan. Immutable per call."""
    user_id: str = Field(..., min_length=1)
    goal: Goal
    frequency: int = Field(..., ge=3, le=6)  # sessions per week
    available_equipment: List[str] = Field(default_factory=list)
    training_max: Optional[float] = Field(default=None, ge=0)
    start_date: Optional[date] = None  # defaults to today

    model_config = ConfigDict(frozen=True)

    @field_validator("goal", mode="before")
    @classmethod
    def _normalize_goal(cls, value):
        if isinstance(value, str):
            key = value.strip().lower()
            return GOAL_ALIASES.get(key, key)
        return value


# ============ Progression ============

class ProgressionPreviewRequest(BaseModel):
    history: List[ProgressionHistoryEntry] = Field(default_factory=list)
    rule: ProgressionRule


# ============ Workout logging ============

class WorkoutSetInput(BaseModel):
    exercise_id: str = Field(..., min_length=1)
    weight: float = Field(..., ge=0)
    reps: int = Field(..., ge=1)
    rpe: Optional[float] = Field(default=None, ge=5, le=10)
    rir: Optional[int] = Field(default=None, ge=0, le=5)
    rest_seconds: Optional[int] = Field(default=None, ge=30, le=600)  # inherits the prescription when omitted
    notes: Optional[str] = Field(default=None, max_length=280)


class WorkoutEntry(BaseModel):
    workout_id: str = Field(..., min_length=1)
    plan_id: str = Field(..., min_length=1)
    sets: List[WorkoutSetInput] = Field(..., min_length=1)
    adherence: Optional[float] = Field(default=None, ge=0, le=1)  # derived from sets when omitted


class RescheduleRequest(BaseModel):
    workout_id: str = Field(..., min_length=1)
    new_date: date


# ============ Drafts (cache only) ============

class DraftSet(BaseModel):
    exercise_id: str = Field(..., min_length=1)
    weight: Optional[float] = None
    reps: Optional[int] = None
    rpe: Optional[float] = Field(default=None, ge=5, le=10)
    rir: Optional[int] = Field(default=None, ge=0, le=5)
    rest_seconds: Optional[int] = Field(default=None, ge=30, le=600)
    notes: Optional[str] = Field(default=None, max_length=280)


class WorkoutDraft(BaseModel):
    workout_id: str = Field(..., min_length=1)
    plan_id: str = Field(..., min_length=1)
    sets: Optional[List[DraftSet]] = None


# ============ Responses ============

class WorkoutExerciseResponse(BaseModel):
    id: str
    exercise_id: str
    order: int
    target_sets: int
    target_reps: int
    target_weight: Optional[float] = None
    rest_seconds: int
    rpe_target: float
    microcycle: int
    mesocycle: int

    model_config = ConfigDict(from_attributes=True)


class WorkoutSetResponse(BaseModel):
    id: str
    exercise_id: str
    weight: float
    reps: int
    rpe: Optional[float]
    rir: Optional[int]
    rest_seconds: int
    notes: Optional[str]

    model_config = ConfigDict(from_attributes=True)


class WorkoutResponse(BaseModel):
    id: str
    plan_id: str
    title: str
    description: Optional[str]
    scheduled_at: date
    microcycle: int
    mesocycle: int
    rpe_target: float
    rest_seconds: int
    completed_at: Optional[datetime]
    exercises: List[WorkoutExerciseResponse] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class LoggedWorkoutResponse(WorkoutResponse):
    sets: List[WorkoutSetResponse] = Field(default_factory=list)
    adherence: float


class PlanResponse(BaseModel):
    id: str
    user_id: str
    created_at: datetime
    goal: Goal
    microcycle_length: int
    mesocycle_weeks: int
    progression_rule: ProgressionRule
    training_max: Optional[float]
    workouts: List[WorkoutResponse] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class NextWorkoutPointer(BaseModel):
    plan_id: str
    workout_id: str


class DraftAck(BaseModel):
    ok: bool

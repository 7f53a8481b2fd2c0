"""
Training Plans API Router

Endpoints for:
- Creating periodized plans and reading them back
- Finding the next pending workout
- Rescheduling and logging workouts
- Autosaving in-progress workout drafts
- Previewing progression for a training history

The acting user arrives in the X-User-Id header, set by the upstream auth
layer. Request bodies are validated by the plan service so every input
error carries the same {detail, error_code} shape.
"""

from datetime import date
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Header, Request, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from core.cache import build_cache, get_redis_client
from core.config import settings
from core.database import get_db
from core.exceptions import NotFoundError
from core.privacy import client_ip
from core.rate_limit import build_rate_limiter
from schemas import (
    DraftAck,
    LoggedWorkoutResponse,
    NextWorkoutPointer,
    PlanResponse,
    WorkoutDraft,
    WorkoutResponse,
)
from services.exercise_catalog import ExerciseCatalog
from services.plan_framework.cache import PlanCacheService
from services.plan_framework.generator import PlanGenerator
from services.plan_framework.progression import ProgressionAdjustment, ProgressionCalculator
from services.plan_service import PlanService
from services.plan_store import PlanStore

router = APIRouter(prefix="/v1", tags=["Training Plans"])


# ============ Request Models ============

class CreatePlanRequest(BaseModel):
    """Profile for a new plan. Ranges are enforced by the plan service."""
    goal: Any = None
    frequency: Any = None
    available_equipment: List[str] = []
    training_max: Optional[float] = None
    start_date: Optional[date] = None


# ============ Dependencies ============

_cache_backend = None
_rate_limiter = None


def get_cache_backend():
    """Process-wide cache backend (Redis when reachable)."""
    global _cache_backend
    if _cache_backend is None:
        _cache_backend = build_cache()
    return _cache_backend


def get_rate_limiter():
    """Process-wide limiter so windows survive across requests."""
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = build_rate_limiter(get_redis_client())
    return _rate_limiter


def get_plan_service(
    db: Session = Depends(get_db),
    cache=Depends(get_cache_backend),
    rate_limiter=Depends(get_rate_limiter),
) -> PlanService:
    """Wire a PlanService for one request."""
    calculator = ProgressionCalculator(
        window=settings.PROGRESSION_HISTORY_WINDOW,
        min_load_increase=settings.PROGRESSION_MIN_LOAD_INCREASE,
        max_load_increase=settings.PROGRESSION_MAX_LOAD_INCREASE,
    )
    return PlanService(
        store=PlanStore(db),
        catalog=ExerciseCatalog(db),
        cache=PlanCacheService(
            cache,
            plan_ttl=settings.CACHE_TTL_PLAN,
            next_ttl=settings.CACHE_TTL_NEXT_WORKOUT,
            draft_ttl=settings.CACHE_TTL_WORKOUT_DRAFT,
        ),
        rate_limiter=rate_limiter,
        generator=PlanGenerator(mesocycle_weeks=settings.MESOCYCLE_WEEKS, calculator=calculator),
        history_window=settings.PROGRESSION_HISTORY_WINDOW,
        max_sets_per_workout=settings.MAX_SETS_PER_WORKOUT,
        ip_salt=settings.IP_HASH_SALT,
    )


def get_acting_user_id(x_user_id: str = Header(..., alias="X-User-Id")) -> str:
    return x_user_id


# ============ Plans ============

@router.post("/plans", response_model=PlanResponse, status_code=status.HTTP_201_CREATED)
def create_plan(
    body: CreatePlanRequest,
    request: Request,
    user_id: str = Depends(get_acting_user_id),
    service: PlanService = Depends(get_plan_service),
):
    """
    Create a new mesocycle plan for the acting user.

    The newest plan supersedes earlier ones for nextWorkout.
    """
    profile = {**body.model_dump(exclude_none=True), "user_id": user_id}
    return service.create_plan(profile, acting_user_id=user_id, client_ip=client_ip(request))


@router.get("/plans/{plan_id}", response_model=PlanResponse)
def get_plan(
    plan_id: str,
    user_id: str = Depends(get_acting_user_id),
    service: PlanService = Depends(get_plan_service),
):
    return service.get_plan(plan_id, acting_user_id=user_id)


# ============ Workouts ============

@router.get("/workouts/next", response_model=Optional[NextWorkoutPointer])
def next_workout(
    request: Request,
    user_id: str = Depends(get_acting_user_id),
    service: PlanService = Depends(get_plan_service),
):
    """Earliest pending workout, or null when everything is done."""
    return service.next_workout(user_id, acting_user_id=user_id, client_ip=client_ip(request))


@router.patch("/workouts/{workout_id}/schedule", response_model=WorkoutResponse)
def reschedule_workout(
    workout_id: str,
    request: Request,
    payload: Dict[str, Any] = Body(...),
    user_id: str = Depends(get_acting_user_id),
    service: PlanService = Depends(get_plan_service),
):
    return service.reschedule_workout(
        {**payload, "workout_id": workout_id},
        acting_user_id=user_id,
        client_ip=client_ip(request),
    )


@router.post("/workouts/{workout_id}/log", response_model=LoggedWorkoutResponse)
def log_workout(
    workout_id: str,
    request: Request,
    payload: Dict[str, Any] = Body(...),
    user_id: str = Depends(get_acting_user_id),
    service: PlanService = Depends(get_plan_service),
):
    """Complete a workout. A workout can be logged once."""
    return service.log_workout(
        {**payload, "workout_id": workout_id},
        acting_user_id=user_id,
        client_ip=client_ip(request),
    )


@router.put("/workouts/{workout_id}/draft", response_model=DraftAck)
def autosave_workout_draft(
    workout_id: str,
    payload: Dict[str, Any] = Body(...),
    service: PlanService = Depends(get_plan_service),
):
    return service.autosave_workout_draft({**payload, "workout_id": workout_id})


@router.get("/workouts/{workout_id}/draft", response_model=WorkoutDraft)
def get_workout_draft(
    workout_id: str,
    service: PlanService = Depends(get_plan_service),
):
    draft = service.get_workout_draft(workout_id)
    if draft is None:
        raise NotFoundError("Draft", workout_id)
    return draft


# ============ Progression ============

@router.post("/progression/preview", response_model=List[ProgressionAdjustment])
def preview_progression(
    payload: Dict[str, Any] = Body(...),
    service: PlanService = Depends(get_plan_service),
):
    """What-if targets for a history; nothing is stored."""
    return service.apply_progression(payload.get("history", []), payload.get("rule"))

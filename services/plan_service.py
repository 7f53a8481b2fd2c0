"""
Plan Service

Orchestrates the engine's operations over injected collaborators:

    createPlan           validate -> rate limit -> load user/catalog -> generate
                         -> persist (one transaction) -> cache snapshot -> audit
    getPlan              cached snapshot, store on miss
    nextWorkout          rate limit -> cached pointer, store on miss
    rescheduleWorkout    load -> ownership -> rate limit (owning user) -> move date
    logWorkout           validate -> load -> ownership -> rate limit -> complete
                         (sets + adherence, one transaction) -> clear pointer/draft
    autosaveWorkoutDraft cache only, last write wins
    applyProgression     progression calculator preview

Workout lifecycle: pending (completed_at null) -> completed (terminal).
Rescheduling only moves scheduled_at of a pending workout.

Cache writes happen only after the store commits and are best-effort.
Store failures are captured and re-raised as InfrastructureError.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel, ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError

from core.events import emit, EVENT_VIEWS_INVALIDATED
from core.exceptions import (
    ConflictError,
    InfrastructureError,
    NotFoundError,
    OwnershipError,
    RateLimitedError,
    ValidationError,
)
from core.privacy import hash_ip
from models import Workout
from schemas import (
    DraftAck,
    LoggedWorkoutResponse,
    NextWorkoutPointer,
    PlanResponse,
    ProgressionPreviewRequest,
    RescheduleRequest,
    UserTrainingProfile,
    WorkoutDraft,
    WorkoutEntry,
    WorkoutResponse,
    WorkoutSetResponse,
)
from services import audit_logger
from services.observability import Observability
from services.plan_framework.cache import PlanCacheService
from services.plan_framework.generator import PlanGenerator
from services.plan_framework.progression import ProgressionAdjustment

logger = logging.getLogger(__name__)

MIN_REST_SECONDS = 30
MAX_REST_SECONDS = 600

# User-facing pages refreshed after a mutation
PLAN_VIEW_PATHS = ["/plans", "/workouts/next"]
WORKOUT_VIEW_PATHS = ["/workouts/next", "/progress"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PlanService:
    """
    Plan engine entry points.

    Args:
        store: PlanStore (durable source of truth)
        catalog: ExerciseCatalog
        cache: PlanCacheService
        rate_limiter: object with limit(key) -> RateLimitResult
        observability: track/log_request/capture_exception hooks
        generator: PlanGenerator (inject a seeded rng for reproducible plans)
        clock: returns the current aware datetime
        history_window: logged sets fetched per exercise for progression
        max_sets_per_workout: upper bound on sets in one logWorkout call
        ip_salt: salt for client IP hashing
        revalidate: called as revalidate(event, user_id=..., paths=...) after
            a mutation commits
        audit: audit sink with log_plan_created, log_workout_rescheduled
            and log_workout_logged
    """

    def __init__(
        self,
        store,
        catalog,
        cache: PlanCacheService,
        rate_limiter,
        observability: Optional[Observability] = None,
        generator: Optional[PlanGenerator] = None,
        clock: Callable[[], datetime] = _utcnow,
        history_window: int = 6,
        max_sets_per_workout: int = 100,
        ip_salt: Optional[str] = None,
        revalidate: Callable[..., None] = emit,
        audit=audit_logger,
    ):
        self.store = store
        self.catalog = catalog
        self.cache = cache
        self.rate_limiter = rate_limiter
        self.observability = observability or Observability()
        self.generator = generator or PlanGenerator()
        self.clock = clock
        self.history_window = history_window
        self.max_sets_per_workout = max_sets_per_workout
        self.ip_salt = ip_salt
        self.revalidate = revalidate
        self.audit = audit

    # ========== createPlan ==========

    def create_plan(
        self,
        profile,
        acting_user_id: Optional[str] = None,
        client_ip: Optional[str] = None,
    ) -> PlanResponse:
        request_id = uuid.uuid4().hex
        ip_hash = hash_ip(client_ip, self.ip_salt)

        profile = self._parse(UserTrainingProfile, profile)
        user_id = profile.user_id
        self.observability.log_request("createPlan.received", request_id, {"user_id": user_id, "ip_hash": ip_hash})

        if acting_user_id is not None and acting_user_id != user_id:
            raise OwnershipError("User", user_id)
        self._rate_limit("createPlan", user_id, request_id)

        user = self._guard(self.store.get_user, user_id)
        if user is None:
            raise NotFoundError("User", user_id)

        exercises = self._guard(self.catalog.exercises_for_profile, profile.available_equipment)
        groups = self.catalog.index_by_muscle_group(exercises)

        # goal and frequency are already range-checked by UserTrainingProfile
        generated = self._guard(
            self.generator.generate,
            user_id=user_id,
            goal=profile.goal,
            frequency=profile.frequency,
            groups=groups,
            history_lookup=lambda exercise_id: self.store.recent_history(
                user_id, exercise_id, self.history_window
            ),
            start_date=profile.start_date or self.clock().date(),
            training_max=profile.training_max if profile.training_max is not None else user.training_max,
        )

        plan = self._guard(self.store.save_plan, generated)
        snapshot = PlanResponse.model_validate(plan)

        self.cache.set_plan_snapshot(snapshot.id, snapshot.model_dump(mode="json"))
        self.cache.invalidate_next_workout(user_id)
        self.revalidate(EVENT_VIEWS_INVALIDATED, user_id=user_id, paths=PLAN_VIEW_PATHS)

        metadata = {
            "request_id": request_id,
            "ip_hash": ip_hash,
            "plan_id": snapshot.id,
            "goal": profile.goal.value,
            "frequency": profile.frequency,
            "workouts": len(snapshot.workouts),
        }
        self.observability.track("plan.created", metadata)
        self.audit.log_plan_created(
            user_id=user_id,
            plan_id=snapshot.id,
            goal=profile.goal.value,
            frequency=profile.frequency,
            workouts=len(snapshot.workouts),
            request_id=request_id,
            ip_hash=ip_hash,
        )
        return snapshot

    # ========== getPlan ==========

    def get_plan(self, plan_id: str, acting_user_id: Optional[str] = None) -> PlanResponse:
        cached = self.cache.get_plan_snapshot(plan_id)
        if cached is not None:
            snapshot = PlanResponse.model_validate(cached)
        else:
            plan = self._guard(self.store.get_plan, plan_id)
            if plan is None:
                raise NotFoundError("Plan", plan_id)
            snapshot = PlanResponse.model_validate(plan)
            self.cache.set_plan_snapshot(plan_id, snapshot.model_dump(mode="json"))

        if acting_user_id is not None and snapshot.user_id != acting_user_id:
            raise OwnershipError("Plan", plan_id)
        return snapshot

    # ========== nextWorkout ==========

    def next_workout(
        self,
        user_id: str,
        acting_user_id: Optional[str] = None,
        client_ip: Optional[str] = None,
    ) -> Optional[NextWorkoutPointer]:
        """Pointer to the earliest pending workout of the user's newest plan, or None."""
        request_id = uuid.uuid4().hex
        if acting_user_id is not None and acting_user_id != user_id:
            raise OwnershipError("User", user_id)
        self._rate_limit("nextWorkout", user_id, request_id)

        cached = self.cache.get_next_workout(user_id)
        if cached is not None:
            return NextWorkoutPointer.model_validate(cached)

        workout = self._guard(self.store.find_next_pending_workout, user_id)
        if workout is None:
            return None

        pointer = NextWorkoutPointer(plan_id=workout.plan_id, workout_id=workout.id)
        self.cache.set_next_workout(user_id, pointer.model_dump())
        self.observability.log_request(
            "nextWorkout.resolved", request_id,
            {"user_id": user_id, "workout_id": workout.id, "ip_hash": hash_ip(client_ip, self.ip_salt)},
        )
        return pointer

    # ========== rescheduleWorkout ==========

    def reschedule_workout(
        self,
        request,
        acting_user_id: Optional[str] = None,
        client_ip: Optional[str] = None,
    ) -> WorkoutResponse:
        """Move a pending workout to a new date. Nothing else on it changes."""
        request_id = uuid.uuid4().hex
        ip_hash = hash_ip(client_ip, self.ip_salt)
        request = self._parse(RescheduleRequest, request)

        workout = self._load_workout(request.workout_id)
        owner_id = workout.plan.user_id
        self._check_owner(workout, owner_id, acting_user_id)
        self._rate_limit("rescheduleWorkout", owner_id, request_id)

        if workout.completed_at is not None:
            raise ConflictError(f"Workout {workout.id} is already completed and cannot be rescheduled")

        old_date = workout.scheduled_at
        self._guard(self.store.update_schedule, workout, request.new_date)

        self.cache.invalidate_next_workout(owner_id)
        self.cache.invalidate_plan(workout.plan_id)
        self.revalidate(EVENT_VIEWS_INVALIDATED, user_id=owner_id, paths=WORKOUT_VIEW_PATHS)

        self.observability.track("workout.rescheduled", {
            "request_id": request_id,
            "ip_hash": ip_hash,
            "workout_id": workout.id,
            "new_date": request.new_date.isoformat(),
        })
        self.audit.log_workout_rescheduled(
            user_id=owner_id,
            workout_id=workout.id,
            old_date=old_date,
            new_date=request.new_date,
            request_id=request_id,
            ip_hash=ip_hash,
        )
        return WorkoutResponse.model_validate(workout)

    # ========== logWorkout ==========

    def log_workout(
        self,
        entry,
        acting_user_id: Optional[str] = None,
        client_ip: Optional[str] = None,
    ) -> LoggedWorkoutResponse:
        """Complete a workout with its performed sets. Terminal."""
        request_id = uuid.uuid4().hex
        ip_hash = hash_ip(client_ip, self.ip_salt)
        entry = self._parse(WorkoutEntry, entry)

        if len(entry.sets) > self.max_sets_per_workout:
            raise ValidationError(
                f"sets: at most {self.max_sets_per_workout} sets per workout", field="sets"
            )

        workout = self._load_workout(entry.workout_id)
        if workout.plan_id != entry.plan_id:
            raise ValidationError(
                f"plan_id: workout {workout.id} does not belong to plan {entry.plan_id}", field="plan_id"
            )
        owner_id = workout.plan.user_id
        self._check_owner(workout, owner_id, acting_user_id)
        self._rate_limit("logWorkout", owner_id, request_id)

        if workout.completed_at is not None:
            raise ConflictError(f"Workout {workout.id} is already completed")

        prescribed = {item.exercise_id: item for item in workout.exercises}
        unknown = sorted({s.exercise_id for s in entry.sets if s.exercise_id not in prescribed})
        if unknown:
            raise ValidationError(
                f"sets: exercises not prescribed in workout {workout.id}: {', '.join(unknown)}", field="sets"
            )

        sets = [
            {
                "exercise_id": s.exercise_id,
                "weight": s.weight,
                "reps": s.reps,
                "rpe": s.rpe,
                "rir": s.rir,
                "rest_seconds": self._rest_for(s.rest_seconds, prescribed[s.exercise_id].rest_seconds, workout),
                "notes": s.notes,
            }
            for s in entry.sets
        ]
        adherence = entry.adherence if entry.adherence is not None else self.derive_adherence(workout, entry)

        metric = self._guard(self.store.complete_workout, workout, sets, adherence, self.clock())
        if metric is None:
            raise ConflictError(f"Workout {workout.id} is already completed")

        self.cache.invalidate_next_workout(owner_id)
        self.cache.delete_draft(workout.id)
        self.cache.invalidate_plan(workout.plan_id)
        self.revalidate(EVENT_VIEWS_INVALIDATED, user_id=owner_id, paths=WORKOUT_VIEW_PATHS)

        self.observability.track("workout.logged", {
            "request_id": request_id,
            "ip_hash": ip_hash,
            "workout_id": workout.id,
            "sets": len(sets),
            "adherence": metric.adherence,
        })
        self.audit.log_workout_logged(
            user_id=owner_id,
            workout_id=workout.id,
            plan_id=workout.plan_id,
            sets=len(sets),
            adherence=metric.adherence,
            request_id=request_id,
            ip_hash=ip_hash,
        )

        response = WorkoutResponse.model_validate(workout).model_dump()
        return LoggedWorkoutResponse(
            **response,
            sets=[WorkoutSetResponse.model_validate(s) for s in workout.sets],
            adherence=metric.adherence,
        )

    @staticmethod
    def derive_adherence(workout: Workout, entry: WorkoutEntry) -> float:
        """
        Share of prescribed sets that were logged.

        Extra sets on an exercise do not make up for missed sets on another.
        """
        target = sum(item.target_sets for item in workout.exercises)
        if target <= 0:
            return 1.0
        logged: Dict[str, int] = {}
        for s in entry.sets:
            logged[s.exercise_id] = logged.get(s.exercise_id, 0) + 1
        done = sum(min(logged.get(item.exercise_id, 0), item.target_sets) for item in workout.exercises)
        return round(max(0.0, min(1.0, done / target)), 3)

    @staticmethod
    def _rest_for(logged: Optional[int], prescribed: Optional[int], workout: Workout) -> int:
        rest = logged if logged is not None else (prescribed or workout.rest_seconds)
        return max(MIN_REST_SECONDS, min(MAX_REST_SECONDS, rest))

    # ========== Drafts ==========

    def autosave_workout_draft(self, draft) -> DraftAck:
        """Overwrite the cached draft for a workout. Never touches the store."""
        draft = self._parse(WorkoutDraft, draft)
        stored = self.cache.set_draft(draft.workout_id, draft.model_dump(mode="json"))
        if not stored:
            logger.warning(f"Draft for workout {draft.workout_id} was not stored")
        return DraftAck(ok=stored)

    def get_workout_draft(self, workout_id: str) -> Optional[WorkoutDraft]:
        cached = self.cache.get_draft(workout_id)
        if cached is None:
            return None
        return WorkoutDraft.model_validate(cached)

    # ========== applyProgression ==========

    def apply_progression(self, history, rule) -> List[ProgressionAdjustment]:
        """Preview progression targets for a history without persisting anything."""
        request = self._parse(ProgressionPreviewRequest, {"history": history, "rule": rule})
        return self.generator.calculator.compute(request.history, request.rule)

    # ========== Internal Methods ==========

    def _parse(self, model, data):
        if isinstance(data, model):
            return data
        if isinstance(data, BaseModel):
            data = data.model_dump()
        try:
            return model.model_validate(data)
        except PydanticValidationError as e:
            first = e.errors()[0]
            loc = [str(part) for part in first.get("loc", ())]
            field = loc[0] if loc else None
            where = ".".join(loc) if loc else model.__name__
            raise ValidationError(f"{where}: {first.get('msg')}", field=field) from e

    def _rate_limit(self, action: str, user_id: str, request_id: str) -> None:
        result = self.rate_limiter.limit(f"{action}:{user_id}")
        if not result.allowed:
            self.observability.log_request(
                f"{action}.rate_limited", request_id,
                {"user_id": user_id, "retry_after": result.retry_after_seconds},
            )
            raise RateLimitedError(action, result.retry_after_seconds)

    def _load_workout(self, workout_id: str) -> Workout:
        workout = self._guard(self.store.get_workout, workout_id)
        if workout is None:
            raise NotFoundError("Workout", workout_id)
        return workout

    @staticmethod
    def _check_owner(workout: Workout, owner_id: str, acting_user_id: Optional[str]) -> None:
        if acting_user_id is not None and acting_user_id != owner_id:
            raise OwnershipError("Workout", workout.id)

    def _guard(self, fn, *args, **kwargs):
        """Run a store-backed call, turning database failures into InfrastructureError."""
        try:
            return fn(*args, **kwargs)
        except SQLAlchemyError as e:
            self.observability.capture_exception(e)
            raise InfrastructureError() from e

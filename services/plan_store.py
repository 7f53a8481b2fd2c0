"""
Plan Store

Durable reads and writes for plans, workouts, logged sets and adherence.
The relational database is the single source of truth; every multi-row
write here is one transaction that rolls back completely on failure.
"""
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from models import User, Plan, Workout, WorkoutExercise, WorkoutSet, AdherenceMetric
from services.plan_framework.constants import DEFAULT_HISTORY_ADHERENCE
from services.plan_framework.generator import GeneratedPlan
from services.plan_framework.progression import ProgressionHistoryEntry

logger = logging.getLogger(__name__)


class PlanStore:
    """Store operations bound to one database session."""

    def __init__(self, db: Session):
        self.db = db

    # ========== Reads ==========

    def get_user(self, user_id: str) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def get_plan(self, plan_id: str) -> Optional[Plan]:
        return (
            self.db.query(Plan)
            .options(selectinload(Plan.workouts).selectinload(Workout.exercises))
            .filter(Plan.id == plan_id)
            .first()
        )

    def get_workout(self, workout_id: str) -> Optional[Workout]:
        return (
            self.db.query(Workout)
            .options(selectinload(Workout.plan), selectinload(Workout.exercises))
            .filter(Workout.id == workout_id)
            .first()
        )

    def latest_plan_id(self, user_id: str) -> Optional[str]:
        row = (
            self.db.query(Plan.id)
            .filter(Plan.user_id == user_id)
            .order_by(Plan.created_at.desc())
            .first()
        )
        return row[0] if row else None

    def find_next_pending_workout(self, user_id: str) -> Optional[Workout]:
        """
        Earliest uncompleted workout of the user's newest plan.

        Ties on scheduled_at fall back to creation order.
        """
        plan_id = self.latest_plan_id(user_id)
        if plan_id is None:
            return None
        return (
            self.db.query(Workout)
            .filter(Workout.plan_id == plan_id, Workout.completed_at.is_(None))
            .order_by(Workout.scheduled_at.asc(), Workout.sequence.asc())
            .first()
        )

    def recent_history(self, user_id: str, exercise_id: str, limit: int = 6) -> List[ProgressionHistoryEntry]:
        """
        Most recent logged sets of one exercise for one user, newest first.

        Adherence comes from the set's workout; workouts without a metric
        count as DEFAULT_HISTORY_ADHERENCE.
        """
        rows = (
            self.db.query(WorkoutSet, AdherenceMetric.adherence)
            .join(Workout, WorkoutSet.workout_id == Workout.id)
            .join(Plan, Workout.plan_id == Plan.id)
            .outerjoin(AdherenceMetric, AdherenceMetric.workout_id == Workout.id)
            .filter(Plan.user_id == user_id, WorkoutSet.exercise_id == exercise_id)
            .order_by(WorkoutSet.created_at.desc())
            .limit(limit)
            .all()
        )
        return [
            ProgressionHistoryEntry(
                date=logged.created_at,
                exercise_id=logged.exercise_id,
                weight=logged.weight,
                reps=logged.reps,
                rpe=logged.rpe,
                adherence=DEFAULT_HISTORY_ADHERENCE if adherence is None else adherence,
            )
            for logged, adherence in rows
        ]

    # ========== Writes ==========

    def save_plan(self, generated: GeneratedPlan) -> Plan:
        """Persist plan, workouts and prescriptions as one aggregate."""
        plan = Plan(
            user_id=generated.user_id,
            goal=generated.goal.value,
            microcycle_length=generated.microcycle_length,
            mesocycle_weeks=generated.mesocycle_weeks,
            progression_rule=generated.progression_rule.value,
            training_max=generated.training_max,
        )
        for gw in generated.workouts:
            workout = Workout(
                sequence=gw.sequence,
                title=gw.title,
                description=gw.description,
                scheduled_at=gw.scheduled_at,
                microcycle=gw.microcycle,
                mesocycle=gw.mesocycle,
                rpe_target=gw.rpe_target,
                rest_seconds=gw.rest_seconds,
            )
            for ge in gw.exercises:
                workout.exercises.append(WorkoutExercise(
                    exercise_id=ge.exercise_id,
                    order=ge.order,
                    target_sets=ge.target_sets,
                    target_reps=ge.target_reps,
                    target_weight=ge.target_weight,
                    rest_seconds=ge.rest_seconds,
                    rpe_target=ge.rpe_target,
                    microcycle=ge.microcycle,
                    mesocycle=ge.mesocycle,
                ))
            plan.workouts.append(workout)

        try:
            self.db.add(plan)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error(f"Failed to persist plan for user {generated.user_id}", exc_info=True)
            raise

        logger.info(f"Persisted plan {plan.id} ({len(plan.workouts)} workouts) for user {generated.user_id}")
        return plan

    def update_schedule(self, workout: Workout, new_date: date) -> Workout:
        try:
            workout.scheduled_at = new_date
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error(f"Failed to reschedule workout {workout.id}", exc_info=True)
            raise
        return workout

    def complete_workout(
        self,
        workout: Workout,
        sets: List[Dict[str, Any]],
        adherence: float,
        completed_at: datetime,
    ) -> Optional[AdherenceMetric]:
        """
        Mark a workout completed, append its sets and record adherence.

        The completion is a conditional update on completed_at IS NULL, so of
        two racing calls only one writes. Returns None when the workout was
        already completed (nothing is written).
        """
        try:
            claimed = (
                self.db.query(Workout)
                .filter(Workout.id == workout.id, Workout.completed_at.is_(None))
                .update({Workout.completed_at: completed_at}, synchronize_session="fetch")
            )
            if not claimed:
                self.db.rollback()
                return None

            for values in sets:
                self.db.add(WorkoutSet(workout_id=workout.id, created_at=completed_at, **values))
            metric = AdherenceMetric(workout_id=workout.id, plan_id=workout.plan_id, adherence=adherence)
            self.db.add(metric)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error(f"Failed to log workout {workout.id}", exc_info=True)
            raise

        self.db.refresh(workout)
        return metric

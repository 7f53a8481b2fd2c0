"""
Plan Generator

Turns a training profile, the eligible exercise index and the user's
recent history into a fully materialized, unpersisted mesocycle.

Usage:
    generator = PlanGenerator(mesocycle_weeks=4)

    plan = generator.generate(
        user_id=user.id,
        goal="hypertrophy",
        frequency=4,
        groups=catalog.index_by_muscle_group(exercises),
        history_lookup=lambda exercise_id: store.recent_history(user.id, exercise_id),
        start_date=date.today(),
    )

Workouts come out in ascending (week, day) order, so scheduled dates are
strictly increasing within a plan. For every workout,
microcycle = (week % frequency) + 1 and mesocycle = week // frequency + 1,
and its exercises carry the same pair.
"""

import logging
import random
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Callable, Dict, List, Optional, Sequence

from .constants import (
    Goal,
    ProgressionRule,
    DayTemplate,
    GoalParameters,
    DEFAULT_MESOCYCLE_WEEKS,
    SUPPORTED_FREQUENCIES,
    CARDIO_CORE_GROUPS,
    MAX_WEEKLY_REP_BUMP,
    RPE_BUMP_PER_WEEK,
    MAX_WEEKLY_RPE_BUMP,
    MAX_RPE_TARGET,
    ENDURANCE_REST_DROP_PER_WEEK,
    MIN_MAIN_REST_SECONDS,
    EXTRA_BLOCK_MIN_SETS,
    EXTRA_BLOCK_MIN_REPS,
    EXTRA_BLOCK_REP_BONUS,
    EXTRA_BLOCK_REST_DROP,
    EXTRA_BLOCK_MIN_REST_SECONDS,
    EXTRA_BLOCK_RPE_DROP,
    EXTRA_BLOCK_MIN_RPE,
    day_templates_for,
    goal_parameters,
    progression_rule_for,
)
from .progression import ProgressionCalculator, ProgressionHistoryEntry, ProgressionAdjustment
from .selection import ExercisePicker

logger = logging.getLogger(__name__)

HistoryLookup = Callable[[str], Sequence[ProgressionHistoryEntry]]


@dataclass
class GeneratedExercise:
    """One prescribed exercise inside a generated workout."""
    exercise_id: str
    order: int
    target_sets: int
    target_reps: int
    target_weight: Optional[float]
    rest_seconds: int
    rpe_target: float
    microcycle: int
    mesocycle: int
    extra_block: bool = False


@dataclass
class GeneratedWorkout:
    """A single session in the generated plan."""
    week: int
    day: int
    sequence: int
    title: str
    description: str
    scheduled_at: date
    microcycle: int
    mesocycle: int
    rpe_target: float
    rest_seconds: int
    exercises: List[GeneratedExercise] = field(default_factory=list)


@dataclass
class GeneratedPlan:
    """Complete generated plan, not yet persisted."""
    user_id: str
    goal: Goal
    microcycle_length: int
    mesocycle_weeks: int
    progression_rule: ProgressionRule
    training_max: Optional[float]
    start_date: date
    workouts: List[GeneratedWorkout]

    def get_week(self, week: int) -> List[GeneratedWorkout]:
        """Get all workouts for a 0-based week."""
        return [w for w in self.workouts if w.week == week]


class PlanGenerator:
    """
    Builds mesocycle plans from day templates, goal parameters and
    progression adjustments.

    Args:
        mesocycle_weeks: weeks per plan
        calculator: progression calculator (defaults to standard tunables)
        rng: random source for exercise sampling
    """

    def __init__(
        self,
        mesocycle_weeks: int = DEFAULT_MESOCYCLE_WEEKS,
        calculator: Optional[ProgressionCalculator] = None,
        rng: Optional[random.Random] = None,
    ):
        if mesocycle_weeks < 1:
            raise ValueError("mesocycle_weeks must be >= 1")
        self.mesocycle_weeks = mesocycle_weeks
        self.calculator = calculator or ProgressionCalculator()
        self.rng = rng or random.Random()

    def generate(
        self,
        user_id: str,
        goal,
        frequency: int,
        groups: Dict[str, List[str]],
        history_lookup: Optional[HistoryLookup] = None,
        start_date: Optional[date] = None,
        training_max: Optional[float] = None,
    ) -> GeneratedPlan:
        """
        Generate a plan.

        Args:
            user_id: owner of the plan
            goal: Goal or its string value
            frequency: sessions per week (3-6)
            groups: eligible exercise ids keyed by lower-cased muscle group
            history_lookup: recent history for an exercise id (None -> no history)
            start_date: first session date (defaults to today)
            training_max: carried onto the plan

        Raises:
            ValueError: unsupported goal or frequency
        """
        goal = Goal(goal)
        if frequency not in SUPPORTED_FREQUENCIES:
            raise ValueError(f"Unsupported weekly frequency: {frequency}")

        params = goal_parameters(goal)
        rule = progression_rule_for(goal)
        templates = day_templates_for(frequency)
        picker = ExercisePicker(groups, rng=self.rng)
        start = start_date or date.today()
        history = _MemoizedHistory(history_lookup)

        if not groups:
            logger.warning(f"No eligible exercises for user {user_id}; plan will have empty workouts")

        workouts: List[GeneratedWorkout] = []
        for week in range(self.mesocycle_weeks):
            for day in range(frequency):
                template = templates[day % len(templates)]
                workouts.append(
                    self._build_workout(week, day, frequency, start, template, goal, params, rule, picker, history)
                )

        logger.info(
            f"Generated {goal.value} plan for user {user_id}: "
            f"{len(workouts)} workouts over {self.mesocycle_weeks} weeks"
        )

        return GeneratedPlan(
            user_id=user_id,
            goal=goal,
            microcycle_length=frequency,
            mesocycle_weeks=self.mesocycle_weeks,
            progression_rule=rule,
            training_max=training_max,
            start_date=start,
            workouts=workouts,
        )

    # ========== Per-workout construction ==========

    def _build_workout(
        self,
        week: int,
        day: int,
        frequency: int,
        start: date,
        template: DayTemplate,
        goal: Goal,
        params: GoalParameters,
        rule: ProgressionRule,
        picker: ExercisePicker,
        history: "_MemoizedHistory",
    ) -> GeneratedWorkout:
        sequence = week * frequency + day
        microcycle = (week % frequency) + 1
        mesocycle = week // frequency + 1

        rep_bump = self.weekly_rep_bump(goal, week)
        rpe_target = min(MAX_RPE_TARGET, params.base_rpe_target + self.weekly_rpe_bump(goal, week))
        rest_seconds = self.rest_seconds(goal, params, week)

        selected = picker.pick(template.groups, params.exercises_per_day)
        adjustments = self._adjustments_for(selected, rule, history)

        exercises: List[GeneratedExercise] = []
        for order, exercise_id in enumerate(selected):
            adjustment = adjustments.get(exercise_id)
            exercises.append(GeneratedExercise(
                exercise_id=exercise_id,
                order=order,
                target_sets=params.base_sets,
                target_reps=adjustment.target_reps if adjustment else params.base_reps + rep_bump,
                target_weight=adjustment.target_weight if adjustment else None,
                rest_seconds=rest_seconds,
                rpe_target=rpe_target,
                microcycle=microcycle,
                mesocycle=mesocycle,
            ))

        if goal == Goal.ENDURANCE:
            for exercise_id in picker.pick(CARDIO_CORE_GROUPS, 1, exclude=selected):
                exercises.append(GeneratedExercise(
                    exercise_id=exercise_id,
                    order=len(exercises),
                    target_sets=max(EXTRA_BLOCK_MIN_SETS, params.base_sets - 1),
                    target_reps=max(EXTRA_BLOCK_MIN_REPS, params.base_reps + rep_bump + EXTRA_BLOCK_REP_BONUS),
                    target_weight=None,
                    rest_seconds=max(EXTRA_BLOCK_MIN_REST_SECONDS, params.base_rest_seconds - EXTRA_BLOCK_REST_DROP),
                    rpe_target=max(EXTRA_BLOCK_MIN_RPE, params.base_rpe_target - EXTRA_BLOCK_RPE_DROP),
                    microcycle=microcycle,
                    mesocycle=mesocycle,
                    extra_block=True,
                ))

        return GeneratedWorkout(
            week=week,
            day=day,
            sequence=sequence,
            title=f"{template.title} - Week {week + 1}",
            description=params.description,
            scheduled_at=start + timedelta(days=sequence),
            microcycle=microcycle,
            mesocycle=mesocycle,
            rpe_target=rpe_target,
            rest_seconds=rest_seconds,
            exercises=exercises,
        )

    def _adjustments_for(
        self,
        exercise_ids: List[str],
        rule: ProgressionRule,
        history: "_MemoizedHistory",
    ) -> Dict[str, ProgressionAdjustment]:
        entries: List[ProgressionHistoryEntry] = []
        for exercise_id in exercise_ids:
            entries.extend(history(exercise_id))
        return {a.exercise_id: a for a in self.calculator.compute(entries, rule)}

    # ========== Weekly bumps ==========

    @staticmethod
    def weekly_rep_bump(goal: Goal, week: int) -> int:
        """Hypertrophy/endurance add a rep every two weeks, capped."""
        if goal in (Goal.HYPERTROPHY, Goal.ENDURANCE):
            return min(MAX_WEEKLY_REP_BUMP, week // 2)
        return 0

    @staticmethod
    def weekly_rpe_bump(goal: Goal, week: int) -> float:
        """Strength climbs a quarter RPE point per week, capped."""
        if goal == Goal.STRENGTH:
            return min(MAX_WEEKLY_RPE_BUMP, week * RPE_BUMP_PER_WEEK)
        return 0.0

    @staticmethod
    def rest_seconds(goal: Goal, params: GoalParameters, week: int) -> int:
        drop = week * ENDURANCE_REST_DROP_PER_WEEK if goal == Goal.ENDURANCE else 0
        return max(MIN_MAIN_REST_SECONDS, params.base_rest_seconds - drop)


class _MemoizedHistory:
    """Looks each exercise's history up once per generation run."""

    def __init__(self, lookup: Optional[HistoryLookup]):
        self._lookup = lookup
        self._seen: Dict[str, List[ProgressionHistoryEntry]] = {}

    def __call__(self, exercise_id: str) -> List[ProgressionHistoryEntry]:
        if self._lookup is None:
            return []
        if exercise_id not in self._seen:
            self._seen[exercise_id] = list(self._lookup(exercise_id))
        return self._seen[exercise_id]

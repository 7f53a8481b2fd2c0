"""
Output Validation Tests

Tests that generated plans make training sense.
These tests validate the QUALITY of output, not just correctness.

Each test checks a specific aspect of plan quality.
"""

import random
import pytest
from datetime import date, datetime, timedelta

from services.plan_framework import (
    PlanGenerator,
    ProgressionCalculator,
    ProgressionHistoryEntry,
    ProgressionRule,
    ExercisePicker,
)
from services.plan_framework.constants import day_templates_for, MAX_RPE_TARGET

GROUPS = {
    "chest": ["bench", "pushup", "incline", "fly"],
    "shoulders": ["ohp", "lateral", "pike"],
    "triceps": ["dips", "pushdown"],
    "back": ["pullup", "row", "pulldown", "inverted"],
    "biceps": ["curl", "hammer"],
    "arms": ["chinup"],
    "legs": ["squat", "lunge", "legpress"],
    "glutes": ["bridge", "thrust"],
    "hamstrings": ["rdl", "legcurl"],
    "hips": ["abduction"],
    "cardio": ["run", "rope", "bike"],
    "core": ["plank", "crunch", "climber"],
    "full body": ["burpee", "thruster"],
}


def _plan(goal, frequency, seed=7, weeks=4):
    generator = PlanGenerator(mesocycle_weeks=weeks, rng=random.Random(seed))
    return generator.generate(
        user_id="quality-check",
        goal=goal,
        frequency=frequency,
        groups=GROUPS,
        start_date=date(2026, 1, 5),
    )


class TestSplitIntegrity:
    """Each day trains what its template says."""

    @pytest.mark.parametrize("frequency", [3, 4, 5, 6])
    def test_main_block_comes_from_template_groups(self, frequency):
        plan = _plan("hypertrophy", frequency)
        templates = day_templates_for(frequency)
        picker = ExercisePicker(GROUPS)
        for workout in plan.workouts:
            template = templates[workout.day]
            allowed = set(picker.pool(template.groups))
            assert workout.title.startswith(template.title)
            assert all(e.exercise_id in allowed for e in workout.exercises), workout.title

    @pytest.mark.parametrize("seed", range(10))
    def test_random_seeds_never_repeat_an_exercise_within_a_day(self, seed):
        plan = _plan("endurance", 6, seed=seed)
        for workout in plan.workouts:
            ids = [e.exercise_id for e in workout.exercises]
            assert len(ids) == len(set(ids)), f"{workout.title}: {ids}"

    def test_variety_across_weeks(self):
        """With a deep pool, random selection should not be a fixed copy every week."""
        plan = _plan("strength", 3, seed=11)
        push_days = [frozenset(e.exercise_id for e in w.exercises) for w in plan.workouts if w.day == 0]
        assert len(set(push_days)) > 1


class TestLoadManagement:
    """Intensity and recovery stay in safe ranges."""

    @pytest.mark.parametrize("goal", ["strength", "hypertrophy", "endurance"])
    def test_rpe_never_exceeds_ceiling(self, goal):
        plan = _plan(goal, 6, weeks=12)
        assert all(w.rpe_target <= MAX_RPE_TARGET for w in plan.workouts)
        assert all(e.rpe_target <= MAX_RPE_TARGET for w in plan.workouts for e in w.exercises)

    @pytest.mark.parametrize("goal", ["strength", "hypertrophy", "endurance"])
    def test_rest_stays_loggable(self, goal):
        """Prescribed rest must be a value a logged set may carry (30-600s)."""
        plan = _plan(goal, 5, weeks=12)
        for workout in plan.workouts:
            assert 30 <= workout.rest_seconds <= 600
            for exercise in workout.exercises:
                assert 30 <= exercise.rest_seconds <= 600

    def test_strength_rests_longest_endurance_shortest(self):
        rest = {goal: _plan(goal, 3).workouts[0].rest_seconds for goal in ("strength", "hypertrophy", "endurance")}
        assert rest["strength"] > rest["hypertrophy"] > rest["endurance"]

    def test_strength_reps_lowest_endurance_highest(self):
        reps = {
            goal: _plan(goal, 3).workouts[0].exercises[0].target_reps
            for goal in ("strength", "hypertrophy", "endurance")
        }
        assert reps["strength"] < reps["hypertrophy"] < reps["endurance"]


class TestProgressionSanity:
    """Progression never jumps beyond its bounded step."""

    @pytest.mark.parametrize("seed", range(20))
    def test_load_changes_are_bounded(self, seed):
        rng = random.Random(seed)
        start = datetime(2026, 1, 1)
        history = [
            ProgressionHistoryEntry(
                date=start + timedelta(days=i),
                exercise_id=rng.choice(["a", "b", "c"]),
                weight=rng.choice([20, 42.5, 60, 100, 140]),
                reps=rng.randint(1, 20),
                rpe=rng.choice([None, 6, 7, 8, 8.5, 9, 10]),
                adherence=rng.random(),
            )
            for i in range(rng.randint(1, 15))
        ]
        calculator = ProgressionCalculator()

        for rule in (ProgressionRule.INTENSITY, ProgressionRule.VOLUME):
            for adjustment in calculator.compute(history, rule):
                latest = max(
                    (h for h in history if h.exercise_id == adjustment.exercise_id),
                    key=lambda h: h.date,
                )
                # Rounding to 0.5 kg can move the result by at most 0.25
                assert latest.weight - 0.25 <= adjustment.target_weight <= latest.weight * 1.05 + 0.25
                assert abs(adjustment.target_reps - latest.reps) <= 2
                assert adjustment.target_reps >= 1
                assert 0 <= adjustment.adherence <= 1

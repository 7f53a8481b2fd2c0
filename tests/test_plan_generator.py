"""
Tests for the plan generator.

Covers scheduling, cycle indexing, prescription ordering, weekly bumps,
the endurance extra block and progression overrides.
"""
import pytest
from datetime import date, datetime, timedelta
from unittest.mock import MagicMock

from services.plan_framework.constants import Goal, ProgressionRule, CARDIO_CORE_GROUPS
from services.plan_framework.generator import PlanGenerator
from services.plan_framework.progression import ProgressionHistoryEntry
from services.plan_framework.selection import ExercisePicker

START = date(2026, 3, 2)

GYM_GROUPS = {
    "chest": ["bench", "pushup", "db-bench"],
    "shoulders": ["ohp", "pike"],
    "triceps": ["dips"],
    "back": ["pullup", "row"],
    "biceps": ["curl"],
    "legs": ["squat", "lunge"],
    "glutes": ["bridge"],
    "hamstrings": ["rdl"],
    "cardio": ["run", "rope"],
    "core": ["plank", "crunch", "climber"],
    "full body": ["burpee"],
}

CARDIO_CORE_IDS = set(ExercisePicker(GYM_GROUPS).pool(CARDIO_CORE_GROUPS))


@pytest.fixture
def generator(fixed_random):
    return PlanGenerator(rng=fixed_random([0, 3, 1, 4, 2]))


def _generate(generator, goal="strength", frequency=3, groups=None, **kwargs):
    return generator.generate(
        user_id="user-1",
        goal=goal,
        frequency=frequency,
        groups=GYM_GROUPS if groups is None else groups,
        start_date=START,
        **kwargs,
    )


class TestScheduling:

    @pytest.mark.parametrize("frequency", [3, 4, 5, 6])
    def test_workout_count_is_weeks_times_frequency(self, generator, frequency):
        plan = _generate(generator, frequency=frequency)
        assert len(plan.workouts) == 4 * frequency
        assert plan.microcycle_length == frequency
        assert plan.mesocycle_weeks == 4

    def test_mesocycle_length_is_configurable(self, fixed_random):
        plan = _generate(PlanGenerator(mesocycle_weeks=6, rng=fixed_random()), frequency=4)
        assert len(plan.workouts) == 24

    @pytest.mark.parametrize("frequency", [3, 5])
    def test_scheduled_dates_strictly_increase_from_start(self, generator, frequency):
        plan = _generate(generator, frequency=frequency)
        dates = [w.scheduled_at for w in plan.workouts]
        assert dates[0] == START
        assert dates == [START + timedelta(days=i) for i in range(len(dates))]

    def test_workouts_come_out_in_week_day_order(self, generator):
        plan = _generate(generator, frequency=4)
        assert [(w.week, w.day) for w in plan.workouts] == [(wk, d) for wk in range(4) for d in range(4)]
        assert [w.sequence for w in plan.workouts] == list(range(16))

    def test_get_week(self, generator):
        plan = _generate(generator, frequency=5)
        week = plan.get_week(2)
        assert len(week) == 5
        assert all(w.week == 2 for w in week)

    def test_defaults_to_today(self, generator):
        plan = generator.generate(user_id="u", goal="strength", frequency=3, groups=GYM_GROUPS)
        assert plan.start_date == date.today()


class TestCycleIndexing:

    @pytest.mark.parametrize("frequency", [3, 4, 5, 6])
    def test_micro_and_mesocycle_follow_week_and_frequency(self, fixed_random, frequency):
        plan = _generate(PlanGenerator(mesocycle_weeks=8, rng=fixed_random()), frequency=frequency)
        for workout in plan.workouts:
            assert workout.microcycle == (workout.week % frequency) + 1
            assert workout.mesocycle == workout.week // frequency + 1

    def test_exercises_share_the_workout_cycle_pair(self, generator):
        plan = _generate(generator, goal="endurance", frequency=3)
        for workout in plan.workouts:
            for exercise in workout.exercises:
                assert (exercise.microcycle, exercise.mesocycle) == (workout.microcycle, workout.mesocycle)


class TestPrescription:

    @pytest.mark.parametrize("goal", ["strength", "hypertrophy", "endurance"])
    def test_order_is_dense_from_zero(self, generator, goal):
        plan = _generate(generator, goal=goal, frequency=5)
        for workout in plan.workouts:
            assert [e.order for e in workout.exercises] == list(range(len(workout.exercises)))

    @pytest.mark.parametrize("goal", ["strength", "hypertrophy", "endurance"])
    def test_no_exercise_twice_in_a_day(self, generator, goal):
        plan = _generate(generator, goal=goal, frequency=6)
        for workout in plan.workouts:
            ids = [e.exercise_id for e in workout.exercises]
            assert len(ids) == len(set(ids))

    def test_exercises_per_day(self, generator):
        strength = _generate(generator, goal="strength", frequency=3)
        assert all(len(w.exercises) == 3 for w in strength.workouts)

    def test_empty_catalog_produces_empty_workouts(self, generator):
        plan = _generate(generator, goal="endurance", frequency=4, groups={})
        assert len(plan.workouts) == 16
        assert all(w.exercises == [] for w in plan.workouts)

    def test_small_pool_degrades_to_fewer_exercises(self, generator):
        plan = _generate(generator, frequency=3, groups={"chest": ["bench"]})
        push, pull, legs = plan.workouts[:3]
        assert [e.exercise_id for e in push.exercises] == ["bench"]
        assert pull.exercises == []
        assert legs.exercises == []


class TestStrengthScenario:

    def test_push_pull_legs_low_reps(self, generator):
        plan = _generate(generator, goal="strength", frequency=3)

        assert len(plan.workouts) == 12
        assert plan.goal == Goal.STRENGTH
        assert plan.progression_rule == ProgressionRule.INTENSITY
        titles = [w.title for w in plan.workouts[:3]]
        assert titles == ["Push - Week 1", "Pull - Week 1", "Legs - Week 1"]
        assert plan.workouts[-1].title == "Legs - Week 4"

        for workout in plan.workouts:
            for exercise in workout.exercises:
                assert exercise.target_reps == 4
                assert exercise.target_sets == 5
                assert exercise.target_weight is None
                assert exercise.rest_seconds == 180

    def test_rpe_climbs_weekly(self, generator):
        plan = _generate(generator, goal="strength", frequency=3)
        assert [plan.get_week(w)[0].rpe_target for w in range(4)] == [7.5, 7.75, 8.0, 8.25]

    def test_rpe_bump_is_capped(self, fixed_random):
        plan = _generate(PlanGenerator(mesocycle_weeks=12, rng=fixed_random()), goal="strength")
        assert max(w.rpe_target for w in plan.workouts) == 9.0


class TestEnduranceScenario:

    def test_every_day_has_one_extra_cardio_core_exercise(self, generator):
        plan = _generate(generator, goal="endurance", frequency=5)

        assert len(plan.workouts) == 20
        for workout in plan.workouts:
            extras = [e for e in workout.exercises if e.extra_block]
            assert len(extras) == 1
            extra = extras[0]
            assert extra is workout.exercises[-1]
            assert extra.exercise_id in CARDIO_CORE_IDS
            main_ids = [e.exercise_id for e in workout.exercises if not e.extra_block]
            assert extra.exercise_id not in main_ids

    def test_extra_block_is_lighter_on_sets_and_rest_heavier_on_reps(self, generator):
        plan = _generate(generator, goal="endurance", frequency=3)
        for workout in plan.workouts:
            main = workout.exercises[0]
            extra = workout.exercises[-1]
            assert extra.target_sets < main.target_sets
            assert extra.rest_seconds < 60
            assert extra.target_reps > main.target_reps

    def test_target_reps_never_decrease_across_weeks(self, generator):
        plan = _generate(generator, goal="endurance", frequency=5)
        for day in range(5):
            reps = [
                max(e.target_reps for e in plan.get_week(week)[day].exercises if not e.extra_block)
                for week in range(4)
            ]
            assert reps == sorted(reps)
            assert reps[0] == 15
            assert reps[-1] == 16

    def test_rest_drops_weekly_with_floor(self, fixed_random):
        plan = _generate(PlanGenerator(mesocycle_weeks=6, rng=fixed_random()), goal="endurance", frequency=3)
        assert [plan.get_week(w)[0].rest_seconds for w in range(6)] == [60, 55, 50, 45, 45, 45]


class TestHypertrophy:

    def test_reps_bump_every_two_weeks(self, generator):
        plan = _generate(generator, goal="hypertrophy", frequency=4)
        reps = [plan.get_week(w)[0].exercises[0].target_reps for w in range(4)]
        assert reps == [10, 10, 11, 11]
        assert all(w.rest_seconds == 90 for w in plan.workouts)
        assert plan.progression_rule == ProgressionRule.VOLUME


class TestValidation:

    def test_unknown_goal_rejected(self, generator):
        with pytest.raises(ValueError):
            _generate(generator, goal="yoga")

    @pytest.mark.parametrize("frequency", [0, 2, 7])
    def test_unsupported_frequency_rejected(self, generator, frequency):
        with pytest.raises(ValueError):
            _generate(generator, frequency=frequency)

    def test_rejected_before_history_lookup(self, generator):
        lookup = MagicMock(return_value=[])
        with pytest.raises(ValueError):
            _generate(generator, frequency=9, history_lookup=lookup)
        lookup.assert_not_called()

    def test_mesocycle_weeks_must_be_positive(self):
        with pytest.raises(ValueError):
            PlanGenerator(mesocycle_weeks=0)


class TestProgressionOverrides:

    def _history(self, exercise_id, weight=100.0, reps=5):
        return [ProgressionHistoryEntry(
            date=datetime(2026, 2, 20, 8, 0),
            exercise_id=exercise_id,
            weight=weight,
            reps=reps,
            rpe=7,
            adherence=1.0,
        )]

    def test_adjustments_replace_base_reps_and_weight(self, fixed_random):
        generator = PlanGenerator(rng=fixed_random([0]))
        lookup = lambda exercise_id: self._history(exercise_id) if exercise_id == "bench" else []
        plan = _generate(generator, goal="strength", history_lookup=lookup)

        push = plan.workouts[0]
        bench = next(e for e in push.exercises if e.exercise_id == "bench")
        assert bench.target_weight == 105.0
        assert bench.target_reps == 5
        others = [e for e in push.exercises if e.exercise_id != "bench"]
        assert all(e.target_weight is None and e.target_reps == 4 for e in others)

    def test_adjustments_do_not_touch_rpe_or_rest(self, fixed_random):
        generator = PlanGenerator(rng=fixed_random([0]))
        plan = _generate(generator, goal="strength", history_lookup=lambda e: self._history(e))
        for workout in plan.workouts:
            for exercise in workout.exercises:
                assert exercise.rest_seconds == 180
                assert exercise.rpe_target == workout.rpe_target

    def test_history_looked_up_once_per_exercise(self, fixed_random):
        generator = PlanGenerator(rng=fixed_random([0]))
        lookup = MagicMock(return_value=[])
        plan = _generate(generator, goal="strength", history_lookup=lookup)

        looked_up = [c.args[0] for c in lookup.call_args_list]
        assert len(looked_up) == len(set(looked_up))
        used = {e.exercise_id for w in plan.workouts for e in w.exercises}
        assert set(looked_up) == used

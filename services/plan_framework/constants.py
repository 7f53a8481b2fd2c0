"""
Constants for plan generation.

These are DEFAULTS that can be overridden through the generator's
constructor. They exist here for type safety and documentation.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple


class Goal(str, Enum):
    """Training goal chosen by the user."""
    STRENGTH = "strength"
    HYPERTROPHY = "hypertrophy"
    ENDURANCE = "endurance"


class ProgressionRule(str, Enum):
    """Which lever progression pulls first."""
    INTENSITY = "INTENSITY"    # load first, reps held
    VOLUME = "VOLUME"          # reps first, then load


# Spanish labels used by the mobile client
GOAL_ALIASES: Dict[str, str] = {
    "fuerza": Goal.STRENGTH.value,
    "hipertrofia": Goal.HYPERTROPHY.value,
    "resistencia": Goal.ENDURANCE.value,
}


def progression_rule_for(goal: Goal) -> ProgressionRule:
    """strength -> INTENSITY, everything else -> VOLUME."""
    return ProgressionRule.INTENSITY if goal == Goal.STRENGTH else ProgressionRule.VOLUME


DEFAULT_MESOCYCLE_WEEKS = 4
SUPPORTED_FREQUENCIES = (3, 4, 5, 6)


# =============================================================================
# EQUIPMENT
# =============================================================================

# Profile tags that make the whole catalog eligible
ALLOW_ALL_EQUIPMENT_TAGS: FrozenSet[str] = frozenset({"gym completo", "full gym"})

# Profile tag -> exercise equipment tags it unlocks.
# Checked in this order; the first tag present in the profile wins.
EQUIPMENT_ALLOW_SETS: Tuple[Tuple[FrozenSet[str], FrozenSet[str]], ...] = (
    (
        frozenset({"mancuernas", "dumbbells"}),
        frozenset({"dumbbells", "kettlebell", "resistance-band", "bodyweight", "plyo-box"}),
    ),
    (
        frozenset({"bodyweight", "peso corporal"}),
        frozenset({"bodyweight", "resistance-band"}),
    ),
)


# =============================================================================
# DAY TEMPLATES
# =============================================================================

@dataclass(frozen=True)
class DayTemplate:
    """A named split segment and the muscle groups it draws exercises from."""
    title: str
    groups: Tuple[str, ...]


PUSH_GROUPS = ("chest", "shoulders", "triceps")
PULL_GROUPS = ("back", "biceps", "arms")
LEG_GROUPS = ("legs", "glutes", "hamstrings", "hips")
CARDIO_CORE_GROUPS = ("cardio", "core", "full body")

DAY_TEMPLATES: Dict[int, List[DayTemplate]] = {
    3: [
        DayTemplate("Push", PUSH_GROUPS),
        DayTemplate("Pull", PULL_GROUPS),
        DayTemplate("Legs", LEG_GROUPS),
    ],
    4: [
        DayTemplate("Upper A", ("chest", "shoulders", "triceps", "back")),
        DayTemplate("Lower A", LEG_GROUPS),
        DayTemplate("Upper B", ("chest", "shoulders", "biceps", "back")),
        DayTemplate("Lower B", LEG_GROUPS),
    ],
    5: [
        DayTemplate("Push", PUSH_GROUPS),
        DayTemplate("Pull", PULL_GROUPS),
        DayTemplate("Legs", LEG_GROUPS),
        DayTemplate("Upper", ("chest", "shoulders", "back")),
        DayTemplate("Metabolic/Core", CARDIO_CORE_GROUPS),
    ],
    6: [
        DayTemplate("Push A", PUSH_GROUPS),
        DayTemplate("Pull A", PULL_GROUPS),
        DayTemplate("Legs A", LEG_GROUPS),
        DayTemplate("Push B", PUSH_GROUPS),
        DayTemplate("Pull B", PULL_GROUPS),
        DayTemplate("Legs B", LEG_GROUPS),
    ],
}


def day_templates_for(frequency: int) -> List[DayTemplate]:
    """Split for a weekly frequency. 6+ days use the PPL x2 split."""
    if frequency >= 6:
        return DAY_TEMPLATES[6]
    return DAY_TEMPLATES[frequency]


# =============================================================================
# GOAL PARAMETERS
# =============================================================================

@dataclass(frozen=True)
class GoalParameters:
    base_sets: int
    base_reps: int
    base_rest_seconds: int
    base_rpe_target: float
    exercises_per_day: int
    description: str


GOAL_PARAMETERS: Dict[Goal, GoalParameters] = {
    Goal.STRENGTH: GoalParameters(
        base_sets=5, base_reps=4, base_rest_seconds=180, base_rpe_target=7.5,
        exercises_per_day=3,
        description="Strength-focused session (low reps, high intensity)",
    ),
    Goal.HYPERTROPHY: GoalParameters(
        base_sets=4, base_reps=10, base_rest_seconds=90, base_rpe_target=8.0,
        exercises_per_day=3,
        description="Hypertrophy-focused session (moderate volume)",
    ),
    Goal.ENDURANCE: GoalParameters(
        base_sets=3, base_reps=15, base_rest_seconds=60, base_rpe_target=6.5,
        exercises_per_day=4,
        description="Endurance / metabolic session",
    ),
}

# Weekly bumps
MAX_WEEKLY_REP_BUMP = 2            # hypertrophy / endurance: +1 rep every 2 weeks
RPE_BUMP_PER_WEEK = 0.25           # strength
MAX_WEEKLY_RPE_BUMP = 1.5
MAX_RPE_TARGET = 9.5
ENDURANCE_REST_DROP_PER_WEEK = 5   # seconds
MIN_MAIN_REST_SECONDS = 45

# Extra cardio/core block appended on endurance days
EXTRA_BLOCK_MIN_SETS = 2
EXTRA_BLOCK_MIN_REPS = 12
EXTRA_BLOCK_REP_BONUS = 2
EXTRA_BLOCK_REST_DROP = 30
EXTRA_BLOCK_MIN_REST_SECONDS = 30
EXTRA_BLOCK_RPE_DROP = 0.5
EXTRA_BLOCK_MIN_RPE = 6.0


# =============================================================================
# PROGRESSION
# =============================================================================

HIGH_ADHERENCE = 0.9
MODERATE_ADHERENCE = 0.75
EASY_RPE = 8.0           # mean RPE at or below this allows the larger load step
GRINDING_RPE = 9.0       # mean RPE at or above this trims a rep under INTENSITY
VOLUME_REP_CEILING = 15  # VOLUME rule switches from reps to load here
WEIGHT_ROUNDING = 0.5    # kg
DEFAULT_HISTORY_ADHERENCE = 0.9  # for logged sets whose workout has no adherence row


def goal_parameters(goal: Goal) -> GoalParameters:
    return GOAL_PARAMETERS[goal]


def allowed_equipment(profile_tags) -> Optional[FrozenSet[str]]:
    """
    Exercise equipment tags eligible for a profile.

    Returns None when every exercise is eligible, otherwise the allow-set
    (possibly empty for unrecognized tags).
    """
    tags = {t.strip().lower() for t in profile_tags or [] if t}
    if tags & ALLOW_ALL_EQUIPMENT_TAGS:
        return None
    for profile_keys, allow_set in EQUIPMENT_ALLOW_SETS:
        if tags & profile_keys:
            return allow_set
    return frozenset()

# Plan Generation Framework
#
# Builds periodized mesocycle plans and progresses per-exercise targets.
#
# Architecture:
# - Constants for goals, splits and progression thresholds
# - Exercise picker sampling without replacement
# - Deterministic progression calculator
# - Generator assembling unpersisted plans
# - Cache service owning the plan/next/draft key scheme

from .cache import PlanCacheService
from .selection import ExercisePicker
from .progression import (
    ProgressionCalculator,
    ProgressionHistoryEntry,
    ProgressionAdjustment,
    compute_progression_adjustments,
)
from .generator import PlanGenerator, GeneratedPlan, GeneratedWorkout, GeneratedExercise
from .constants import Goal, ProgressionRule, DayTemplate, allowed_equipment, progression_rule_for

__all__ = [
    # Core services
    'PlanCacheService',
    'ExercisePicker',

    # Progression
    'ProgressionCalculator',
    'ProgressionHistoryEntry',
    'ProgressionAdjustment',
    'compute_progression_adjustments',

    # Main generator
    'PlanGenerator',
    'GeneratedPlan',
    'GeneratedWorkout',
    'GeneratedExercise',

    # Constants
    'Goal',
    'ProgressionRule',
    'DayTemplate',
    'allowed_equipment',
    'progression_rule_for',
]

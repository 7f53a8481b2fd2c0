"""
Progression Calculator

Maps a window of recent performance per exercise to next-cycle targets.

Pure and deterministic: identical (history, rule) input always yields
identical output, which keeps progression explainable to the user. No
randomness, no clock, no I/O. Empty input yields an empty list.

Rules:
- INTENSITY (strength): load first. With high adherence the weight goes up
  by the large step when sessions felt manageable (mean RPE <= 8 or no RPE
  logged) and by the small step otherwise; reps are held, and trimmed by one
  when sessions were grinding (mean RPE >= 9). Moderate adherence holds the
  weight and adds a rep.
- VOLUME (hypertrophy/endurance): reps first (+2 high, +1 moderate adherence)
  until the rep ceiling, then the small load step with reps dropped by two
  (double progression).
- Low adherence holds both targets at the latest performance.

Exercises without history produce no adjustment; the generator falls back
to its base template values for them.
"""

from collections import OrderedDict
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import (
    ProgressionRule,
    HIGH_ADHERENCE,
    MODERATE_ADHERENCE,
    EASY_RPE,
    GRINDING_RPE,
    VOLUME_REP_CEILING,
    WEIGHT_ROUNDING,
)


class ProgressionHistoryEntry(BaseModel):
    """One historical set, as seen by the calculator."""
    date: datetime
    exercise_id: str = Field(..., min_length=1)
    weight: float = Field(..., ge=0)
    reps: int = Field(..., ge=1)
    rpe: Optional[float] = Field(default=None, ge=5, le=10)
    adherence: float = Field(..., ge=0, le=1)

    @field_validator("date")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # Naive timestamps are UTC so mixed inputs stay comparable
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class ProgressionAdjustment(BaseModel):
    """Next-cycle targets for one exercise."""
    exercise_id: str
    target_weight: float
    target_reps: int
    adherence: float

    model_config = ConfigDict(frozen=True)


def _round_weight(weight: float) -> float:
    return round(round(weight / WEIGHT_ROUNDING) * WEIGHT_ROUNDING, 2)


def _mean(values: Sequence[float]) -> Optional[float]:
    if not values:
        return None
    return sum(values) / len(values)


class ProgressionCalculator:
    """
    Computes per-exercise target adjustments from recent history.

    Args:
        window: most recent entries considered per exercise
        min_load_increase: small load step (fraction, e.g. 0.025)
        max_load_increase: large load step (fraction, e.g. 0.05)
    """

    def __init__(
        self,
        window: int = 6,
        min_load_increase: float = 0.025,
        max_load_increase: float = 0.05,
    ):
        if window < 1:
            raise ValueError("window must be >= 1")
        if min_load_increase > max_load_increase:
            raise ValueError("min_load_increase must not exceed max_load_increase")
        self.window = window
        self.min_load_increase = min_load_increase
        self.max_load_increase = max_load_increase

    def compute(
        self,
        history: Sequence[ProgressionHistoryEntry],
        rule: ProgressionRule,
    ) -> List[ProgressionAdjustment]:
        rule = ProgressionRule(rule)
        adjustments: List[ProgressionAdjustment] = []
        for exercise_id, entries in self._recent_by_exercise(history).items():
            adjustments.append(self._adjust(exercise_id, entries, rule))
        return adjustments

    def _recent_by_exercise(
        self, history: Sequence[ProgressionHistoryEntry]
    ) -> Dict[str, List[ProgressionHistoryEntry]]:
        grouped: Dict[str, List[ProgressionHistoryEntry]] = OrderedDict()
        for entry in history:
            grouped.setdefault(entry.exercise_id, []).append(entry)

        # Newest first; sorted() is stable so same-date entries keep input order.
        return OrderedDict(
            (exercise_id, sorted(entries, key=lambda e: e.date, reverse=True)[: self.window])
            for exercise_id, entries in grouped.items()
        )

    def _adjust(
        self,
        exercise_id: str,
        recent: List[ProgressionHistoryEntry],
        rule: ProgressionRule,
    ) -> ProgressionAdjustment:
        latest = recent[0]
        adherence = _mean([e.adherence for e in recent])
        rpe = _mean([e.rpe for e in recent if e.rpe is not None])

        weight = latest.weight
        reps = latest.reps

        if rule == ProgressionRule.INTENSITY:
            weight, reps = self._intensity(weight, reps, adherence, rpe)
        else:
            weight, reps = self._volume(weight, reps, adherence)

        return ProgressionAdjustment(
            exercise_id=exercise_id,
            target_weight=_round_weight(weight),
            target_reps=max(1, reps),
            adherence=round(adherence, 3),
        )

    def _intensity(self, weight: float, reps: int, adherence: float, rpe: Optional[float]):
        if adherence >= HIGH_ADHERENCE:
            step = self.max_load_increase if rpe is None or rpe <= EASY_RPE else self.min_load_increase
            weight = weight * (1 + step)
            if rpe is not None and rpe >= GRINDING_RPE:
                reps -= 1
        elif adherence >= MODERATE_ADHERENCE:
            reps += 1
        return weight, reps

    def _volume(self, weight: float, reps: int, adherence: float):
        if adherence >= HIGH_ADHERENCE:
            if reps < VOLUME_REP_CEILING:
                reps += 2
            else:
                weight = weight * (1 + self.min_load_increase)
                reps -= 2
        elif adherence >= MODERATE_ADHERENCE:
            if reps < VOLUME_REP_CEILING:
                reps += 1
        return weight, reps


def compute_progression_adjustments(
    history: Sequence[ProgressionHistoryEntry],
    rule: ProgressionRule,
    calculator: Optional[ProgressionCalculator] = None,
) -> List[ProgressionAdjustment]:
    """Module-level entry point with default tunables."""
    return (calculator or ProgressionCalculator()).compute(history, rule)

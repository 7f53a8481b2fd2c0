"""
Exercise Catalog

Read-only access to the exercise reference data, filtered by the equipment a
profile has available and indexed by muscle group for selection.
"""
import logging
from typing import Dict, FrozenSet, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from models import Exercise
from services.plan_framework.constants import allowed_equipment

logger = logging.getLogger(__name__)

UNGROUPED = "other"


class ExerciseCatalog:
    """Exercise lookups for one database session."""

    def __init__(self, db: Session):
        self.db = db

    def list_exercises(self, allowed: Optional[FrozenSet[str]]) -> List[Exercise]:
        """
        Exercises eligible for an equipment allow-set, oldest first.

        Args:
            allowed: None for the whole catalog, otherwise equipment tags to keep.
                An empty set matches nothing. Stored tags match case-insensitively.
        """
        if allowed is not None and not allowed:
            return []

        query = self.db.query(Exercise)
        if allowed is not None:
            query = query.filter(func.lower(Exercise.equipment).in_(sorted(allowed)))
        return query.order_by(Exercise.created_at.asc(), Exercise.id.asc()).all()

    def exercises_for_profile(self, equipment_tags: Iterable[str]) -> List[Exercise]:
        allowed = allowed_equipment(equipment_tags)
        exercises = self.list_exercises(allowed)
        if not exercises:
            logger.warning(f"No exercises match equipment tags {sorted(equipment_tags or [])}")
        return exercises

    @staticmethod
    def index_by_muscle_group(exercises: Iterable[Exercise]) -> Dict[str, List[str]]:
        """
        Map lower-cased muscle group to exercise ids, preserving catalog order.

        Exercises with no muscle group land under "other".
        """
        index: Dict[str, List[str]] = {}
        for exercise in exercises:
            key = (exercise.muscle_group or UNGROUPED).strip().lower()
            index.setdefault(key, []).append(exercise.id)
        return index

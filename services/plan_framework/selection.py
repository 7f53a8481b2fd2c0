"""
Exercise Selection

Draws exercises for a template day from the muscle-group index built by the
catalog. Selection is sampling without replacement: a random index is drawn,
re-rolled when it lands on an exercise already taken, and after a few failed
re-rolls the draw walks the pool positionally (wrapping around) to the next
free exercise. A day never contains the same exercise twice, and a pool
smaller than requested simply yields fewer exercises.

The random source is injected so tests can pin the sequence.
"""

import random
from typing import Dict, Iterable, List, Optional, Sequence, Set

MAX_REROLLS = 3


class ExercisePicker:
    """Samples exercise ids from a {muscle_group: [exercise_id, ...]} index."""

    def __init__(self, groups: Dict[str, List[str]], rng: Optional[random.Random] = None):
        self.groups = groups
        self.rng = rng or random.Random()

    def pool(self, group_keys: Iterable[str]) -> List[str]:
        """Unique ids for the given groups, in group order then catalog order."""
        seen: Set[str] = set()
        pool: List[str] = []
        for key in group_keys:
            for exercise_id in self.groups.get(key.lower(), []):
                if exercise_id not in seen:
                    seen.add(exercise_id)
                    pool.append(exercise_id)
        return pool

    def pick(
        self,
        group_keys: Sequence[str],
        count: int,
        exclude: Iterable[str] = (),
    ) -> List[str]:
        """
        Pick up to `count` distinct exercise ids from the groups.

        Args:
            group_keys: muscle groups to draw from
            count: requested number of exercises
            exclude: ids that must not be picked (already on the day)
        """
        excluded = set(exclude)
        pool = [e for e in self.pool(group_keys) if e not in excluded]
        if not pool or count <= 0:
            return []

        wanted = min(count, len(pool))
        selected: List[str] = []
        taken: Set[str] = set()

        for i in range(wanted):
            candidate = self._draw(pool, taken)
            if candidate is None:
                candidate = self._walk(pool, taken, start=i)
            selected.append(candidate)
            taken.add(candidate)

        return selected

    def _draw(self, pool: List[str], taken: Set[str]) -> Optional[str]:
        for _ in range(1 + MAX_REROLLS):
            candidate = pool[self.rng.randrange(len(pool))]
            if candidate not in taken:
                return candidate
        return None

    @staticmethod
    def _walk(pool: List[str], taken: Set[str], start: int) -> str:
        # Called only while len(taken) < len(pool), so a free slot exists.
        for offset in range(len(pool)):
            candidate = pool[(start + offset) % len(pool)]
            if candidate not in taken:
                return candidate
        raise RuntimeError("exercise pool exhausted")  # unreachable by construction

"""
Plan Cache Service

Short-lived read-through copies for the plan engine, on top of any
key/value cache exposing get/set(ttl)/delete (RedisCache or LocalCache).

Keys:
1. plan:<planId>            plan snapshot, written after createPlan commits
2. next:<userId>            next pending workout pointer
3. workout:draft:<workoutId> in-progress log draft (cache only, never persisted)

Every call is best-effort: backend failures are logged and surface as a
miss (None) or False, never as an exception. The database stays the source
of truth.

Usage:
    cache = PlanCacheService(build_cache())

    snapshot = cache.get_plan_snapshot(plan_id)
    cache.set_next_workout(user_id, {"plan_id": plan_id, "workout_id": workout_id})
"""

import logging
from typing import Any, Optional

logger = logging.getLogger(__name__)


class PlanCacheService:
    """Namespaced, TTL-bound cache access for plans, pointers and drafts."""

    # Cache TTLs in seconds
    TTL_PLAN = 300
    TTL_NEXT_WORKOUT = 120
    TTL_WORKOUT_DRAFT = 300

    def __init__(
        self,
        cache,
        plan_ttl: int = TTL_PLAN,
        next_ttl: int = TTL_NEXT_WORKOUT,
        draft_ttl: int = TTL_WORKOUT_DRAFT,
    ):
        """
        Args:
            cache: backend with get(key), set(key, value, ttl), delete(key)
        """
        self.cache = cache
        self.plan_ttl = plan_ttl
        self.next_ttl = next_ttl
        self.draft_ttl = draft_ttl

    # ========== Keys ==========

    @staticmethod
    def plan_key(plan_id: str) -> str:
        return f"plan:{plan_id}"

    @staticmethod
    def next_workout_key(user_id: str) -> str:
        return f"next:{user_id}"

    @staticmethod
    def draft_key(workout_id: str) -> str:
        return f"workout:draft:{workout_id}"

    # ========== Plan snapshots ==========

    def get_plan_snapshot(self, plan_id: str) -> Optional[dict]:
        return self._get(self.plan_key(plan_id))

    def set_plan_snapshot(self, plan_id: str, snapshot: dict) -> bool:
        return self._set(self.plan_key(plan_id), snapshot, self.plan_ttl)

    def invalidate_plan(self, plan_id: str) -> bool:
        return self._delete(self.plan_key(plan_id))

    # ========== Next workout pointer ==========

    def get_next_workout(self, user_id: str) -> Optional[dict]:
        return self._get(self.next_workout_key(user_id))

    def set_next_workout(self, user_id: str, pointer: dict) -> bool:
        return self._set(self.next_workout_key(user_id), pointer, self.next_ttl)

    def invalidate_next_workout(self, user_id: str) -> bool:
        return self._delete(self.next_workout_key(user_id))

    # ========== Drafts ==========

    def get_draft(self, workout_id: str) -> Optional[dict]:
        return self._get(self.draft_key(workout_id))

    def set_draft(self, workout_id: str, draft: dict) -> bool:
        """Overwrite the draft. Last write wins."""
        return self._set(self.draft_key(workout_id), draft, self.draft_ttl)

    def delete_draft(self, workout_id: str) -> bool:
        return self._delete(self.draft_key(workout_id))

    # ========== Internal Methods ==========

    def _get(self, key: str) -> Optional[Any]:
        try:
            return self.cache.get(key)
        except Exception as e:
            logger.warning(f"Cache get error for {key}: {e}")
            return None

    def _set(self, key: str, value: Any, ttl: int) -> bool:
        try:
            return bool(self.cache.set(key, value, ttl))
        except Exception as e:
            logger.warning(f"Cache set error for {key}: {e}")
            return False

    def _delete(self, key: str) -> bool:
        try:
            return bool(self.cache.delete(key))
        except Exception as e:
            logger.warning(f"Cache delete error for {key}: {e}")
            return False

"""
Rate Limiting

Fixed-window counters keyed "<action>:<userId>", guarding the engine's
mutation entry points. Each action has its own limit per window.

Backend failures fail open: the limiter must never be the reason a request
hangs or errors, so a Redis problem is logged and the call is allowed.
"""
import time
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a single limiter check."""
    allowed: bool
    remaining: int
    retry_after_seconds: Optional[int] = None


class RateLimiter:
    """Per-action, per-user fixed window limiter."""

    def __init__(
        self,
        redis=None,
        action_limits: Optional[Dict[str, int]] = None,
        default_limit: int = 60,
        window: int = 60,
        enabled: bool = True,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            redis: Redis client (optional, counts in-process if not provided)
            action_limits: requests per window by action name
            default_limit: limit for actions not listed
            window: window length in seconds
            enabled: when False every check is allowed
        """
        self.redis = redis
        self.action_limits = dict(action_limits or {})
        self.default_limit = default_limit
        self.window = window
        self.enabled = enabled
        self._clock = clock
        # key -> (count, window_reset_at)
        self._local_windows: Dict[str, Tuple[int, float]] = {}

    def limit(self, key: str) -> RateLimitResult:
        """Count one request against `key` and report whether it may proceed."""
        limit = self._limit_for(key)
        if not self.enabled:
            return RateLimitResult(allowed=True, remaining=limit)

        if self.redis is not None:
            return self._check_redis(key, limit)
        return self._check_local(key, limit)

    def _limit_for(self, key: str) -> int:
        action = key.split(":", 1)[0]
        return self.action_limits.get(action, self.default_limit)

    def _check_redis(self, key: str, limit: int) -> RateLimitResult:
        redis_key = f"rate_limit:{key}"
        try:
            count = self.redis.incr(redis_key)
            if count == 1:
                # First request in this window
                self.redis.expire(redis_key, self.window)
            if count > limit:
                ttl = self.redis.ttl(redis_key)
                return RateLimitResult(
                    allowed=False,
                    remaining=0,
                    retry_after_seconds=ttl if ttl and ttl > 0 else self.window,
                )
            return RateLimitResult(allowed=True, remaining=max(0, limit - count))
        except RedisError as e:
            logger.warning(f"Rate limit check error for {key}: {e}; allowing request")
            return RateLimitResult(allowed=True, remaining=limit)

    def _prune_local(self, now: float) -> None:
        """Drop windows that have already reset."""
        expired = [key for key, (_, reset_at) in self._local_windows.items() if reset_at <= now]
        for key in expired:
            del self._local_windows[key]

    def _check_local(self, key: str, limit: int) -> RateLimitResult:
        now = self._clock()
        self._prune_local(now)
        count, reset_at = self._local_windows.get(key, (0, now + self.window))

        if count >= limit:
            return RateLimitResult(
                allowed=False,
                remaining=0,
                retry_after_seconds=max(1, int(reset_at - now)),
            )

        count += 1
        self._local_windows[key] = (count, reset_at)
        return RateLimitResult(allowed=True, remaining=limit - count)


def build_rate_limiter(redis=None) -> RateLimiter:
    """Limiter configured from settings."""
    from core.config import settings

    return RateLimiter(
        redis=redis,
        action_limits={
            "createPlan": settings.RATE_LIMIT_CREATE_PLAN,
            "nextWorkout": settings.RATE_LIMIT_NEXT_WORKOUT,
            "rescheduleWorkout": settings.RATE_LIMIT_RESCHEDULE_WORKOUT,
            "logWorkout": settings.RATE_LIMIT_LOG_WORKOUT,
        },
        window=settings.RATE_LIMIT_WINDOW_S,
        enabled=settings.RATE_LIMIT_ENABLED,
    )

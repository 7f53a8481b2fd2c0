"""
Redis Caching Layer

Key/value cache for short-lived JSON documents (plan snapshots, next-workout
pointers, workout drafts). The cache is an optimization only: every failure
degrades to a miss and is logged, never raised.
"""
import json
import logging
import time
from typing import Optional, Any, Callable, Dict, Tuple
import redis
from redis.exceptions import ConnectionError, TimeoutError, RedisError
from core.config import settings

logger = logging.getLogger(__name__)

# Redis connection pool (shared by cache and rate limiter)
_redis_client: Optional[redis.Redis] = None


def get_redis_client() -> Optional[redis.Redis]:
    """Get Redis client with connection pooling. Returns None if Redis unavailable."""
    global _redis_client

    if _redis_client is not None:
        return _redis_client

    try:
        _redis_client = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT_S,
            socket_timeout=settings.REDIS_SOCKET_TIMEOUT_S,
            health_check_interval=30
        )
        # Test connection
        _redis_client.ping()
        logger.info("Redis connection established")
        return _redis_client
    except (ConnectionError, TimeoutError, RedisError) as e:
        logger.warning(f"Redis unavailable: {e}. Caching disabled.")
        _redis_client = None
        return None


class RedisCache:
    """JSON cache on top of a Redis client."""

    def __init__(self, client: redis.Redis):
        self.client = client

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache. Returns None if not found or Redis unavailable."""
        try:
            value = self.client.get(key)
            if value:
                return json.loads(value)
            return None
        except (ConnectionError, TimeoutError, RedisError) as e:
            logger.warning(f"Cache get error for key {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl: int) -> bool:
        """Set value in cache. Returns True if successful, False otherwise."""
        try:
            self.client.setex(
                key,
                ttl,
                json.dumps(value, default=str)  # default=str handles datetime, UUID, etc.
            )
            return True
        except (ConnectionError, TimeoutError, RedisError) as e:
            logger.warning(f"Cache set error for key {key}: {e}")
            return False

    def delete(self, key: str) -> bool:
        """Delete key from cache. Returns True if successful, False otherwise."""
        try:
            self.client.delete(key)
            return True
        except (ConnectionError, TimeoutError, RedisError) as e:
            logger.warning(f"Cache delete error for key {key}: {e}")
            return False


class LocalCache:
    """
    In-process cache with per-key expiry.

    Used when Redis is not configured (single-process development) and in
    tests. Values are round-tripped through JSON so callers see the same
    shapes they would get back from Redis.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[str, Tuple[str, float]] = {}

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        payload, expires_at = entry
        if expires_at <= self._clock():
            del self._entries[key]
            return None
        return json.loads(payload)

    def set(self, key: str, value: Any, ttl: int) -> bool:
        self._entries[key] = (json.dumps(value, default=str), self._clock() + ttl)
        return True

    def delete(self, key: str) -> bool:
        self._entries.pop(key, None)
        return True


def build_cache():
    """Redis-backed cache when reachable, otherwise an in-process one."""
    client = get_redis_client()
    if client is None:
        return LocalCache()
    return RedisCache(client)

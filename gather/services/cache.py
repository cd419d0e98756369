"""
Redis Cache Service
===================

Redis caching layer for application data with connection management,
cache operations, and invalidation utilities.
"""

import json
import logging
from typing import Any, Optional

import redis.asyncio as redis
from redis.asyncio import Redis

from gather.config import settings

logger = logging.getLogger(__name__)

# Global Redis client instance
_redis_client: Optional[Redis] = None


async def init_redis() -> Redis:
    """
    Initialize Redis connection pool and pre-warm a connection.

    Returns:
        Redis client instance
    """
    global _redis_client

    if _redis_client is None:
        _redis_client = await redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            max_connections=50,
            socket_keepalive=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
            health_check_interval=30,
        )
        await _redis_client.ping()
        logger.info("Redis connection established")

    return _redis_client


async def get_redis() -> Redis:
    """Get Redis client, initializing if necessary."""
    if _redis_client is None:
        return await init_redis()

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection."""
    global _redis_client

    if _redis_client is not None:
        await _redis_client.close()
        _redis_client = None
        logger.info("Redis connection closed")


class CacheManager:
    """
    Redis cache manager with common operations.

    Key naming convention:
        cache:{module}:{resource}:{identifier}

    Every operation is best-effort: a Redis failure is logged and
    reported as a miss so callers fall through to the database.
    """

    TTL_SHORT = 300  # 5 minutes
    TTL_MEDIUM = 900  # 15 minutes
    TTL_HOUR = 3600  # 1 hour

    @staticmethod
    async def get(key: str) -> Optional[Any]:
        """
        Get value from cache.

        Args:
            key: Cache key

        Returns:
            Cached value if exists and valid, None otherwise
        """
        try:
            client = await get_redis()
            value = await client.get(key)

            if value is None:
                return None

            return json.loads(value)
        except Exception as e:
            logger.warning("Cache get error for key %s: %s", key, e)
            return None

    @staticmethod
    async def set(
        key: str,
        value: Any,
        ttl: int = TTL_SHORT,
    ) -> bool:
        """
        Set value in cache with TTL.

        Args:
            key: Cache key
            value: Value to cache (will be JSON serialized)
            ttl: Time to live in seconds (default 5 minutes)

        Returns:
            True if successful, False otherwise
        """
        try:
            client = await get_redis()
            serialized = json.dumps(value, default=str)
            await client.setex(key, ttl, serialized)
            return True
        except Exception as e:
            logger.warning("Cache set error for key %s: %s", key, e)
            return False

    @staticmethod
    async def delete(key: str) -> bool:
        """
        Delete key from cache.

        Returns:
            True if key was deleted, False otherwise
        """
        try:
            client = await get_redis()
            result = await client.delete(key)
            return result > 0
        except Exception as e:
            logger.warning("Cache delete error for key %s: %s", key, e)
            return False

    @staticmethod
    async def delete_pattern(pattern: str) -> int:
        """
        Delete all keys matching a pattern.

        Args:
            pattern: Pattern with wildcards (e.g., "cache:patterns:*")

        Returns:
            Number of keys deleted
        """
        try:
            client = await get_redis()
            keys = []

            async for key in client.scan_iter(match=pattern):
                keys.append(key)

            if keys:
                return await client.delete(*keys)
            return 0
        except Exception as e:
            logger.warning("Cache delete pattern error for %s: %s", pattern, e)
            return 0


# =============================================================================
# Cache Key Builders
# =============================================================================

class CacheKeys:
    """Cache key builders for consistent naming."""

    @staticmethod
    def profile_auth(user_id: str) -> str:
        """Cached profile lookup used by the auth dependency."""
        return f"cache:profile:auth:{user_id}"

    @staticmethod
    def tasks(user_id: str, day: str) -> str:
        """Active task list as of one local day; snoozes lift at local midnight."""
        return f"cache:tasks:list:{user_id}:{day}"

    @staticmethod
    def habits_today(user_id: str, day: str) -> str:
        """Habits with completion state for one local day."""
        return f"cache:habits:{user_id}:{day}"

    @staticmethod
    def rewards(user_id: str) -> str:
        """Rewards summary."""
        return f"cache:rewards:{user_id}"

    @staticmethod
    def patterns(user_id: str) -> str:
        """Completion pattern analysis."""
        return f"cache:patterns:{user_id}"

    @staticmethod
    def capture_session(session_id: str) -> str:
        """Clarifying-question flow state."""
        return f"capture:session:{session_id}"


# =============================================================================
# Cache Invalidation Helpers
# =============================================================================

class CacheInvalidator:
    """Helpers for invalidating related cache entries."""

    @staticmethod
    async def on_task_change(user_id: str) -> None:
        """Invalidate caches when a task is created, edited or deleted."""
        await CacheManager.delete_pattern(f"cache:tasks:list:{user_id}:*")

    @staticmethod
    async def on_task_complete(user_id: str) -> None:
        """Invalidate caches when a task or step is completed."""
        await CacheManager.delete_pattern(f"cache:tasks:list:{user_id}:*")
        await CacheManager.delete(CacheKeys.patterns(user_id))
        await CacheManager.delete(CacheKeys.rewards(user_id))

    @staticmethod
    async def on_habit_change(user_id: str) -> None:
        """Invalidate caches when habits or habit logs change."""
        await CacheManager.delete_pattern(f"cache:habits:{user_id}:*")
        await CacheManager.delete(CacheKeys.rewards(user_id))

    @staticmethod
    async def on_profile_update(user_id: str) -> None:
        """Invalidate caches when profile is updated."""
        await CacheManager.delete(CacheKeys.profile_auth(user_id))

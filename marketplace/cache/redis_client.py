"""
Redis client - shared counters for rate limiting across API processes.
Challenge: Connection pooling, fail gracefully when Redis is down.
Design: Single client instance, dependency injection for testability.
"""

import logging

from redis.asyncio import Redis

from marketplace.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

# Shared async Redis client (connection pool managed by redis-py)
_redis: Redis | None = None


async def get_redis() -> Redis:
    """Get Redis connection. Used as FastAPI dependency."""
    global _redis
    if _redis is None:
        _redis = Redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
        )
    return _redis


class RedisCounterStore:
    """CounterStore backed by INCR + EXPIRE. Returns None if Redis is down (fail open)."""

    def __init__(self, client: Redis | None = None):
        self._client = client

    async def incr(self, key: str, ttl_seconds: int) -> int | None:
        try:
            client = self._client or await get_redis()
            count = await client.incr(key)
            if count == 1:
                await client.expire(key, ttl_seconds)
            return int(count)
        except Exception as exc:
            logger.warning("rate limit counter unavailable: %s", exc)
            return None

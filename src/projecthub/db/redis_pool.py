"""Shared Redis connection pool.

Learn: Redis is optional. The rate limiter and the Redis-backed magic-link
store call get_redis(); if the lifespan could not connect, get_redis()
raises and callers either skip (rate limiting) or fail the request.
"""

from typing import Optional

import redis.asyncio as aioredis

from projecthub.config import settings

# Global Redis connection pool (initialized in lifespan)
_redis: Optional[aioredis.Redis] = None


async def init_redis() -> aioredis.Redis:
    """Initialize the Redis connection pool."""
    global _redis
    _redis = aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )
    try:
        # Verify connection
        await _redis.ping()
    except Exception:
        await _redis.aclose()
        _redis = None
        raise
    return _redis


async def close_redis() -> None:
    """Close the Redis connection pool."""
    global _redis
    if _redis:
        await _redis.aclose()
        _redis = None


def get_redis() -> aioredis.Redis:
    """Get the Redis connection (must be initialized first)."""
    if _redis is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis

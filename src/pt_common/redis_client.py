"""Redis client factory — used for request rate limiting only.

NOT used for wallet balances, holdings or the provider token (those live in
PostgreSQL so they survive a Redis flush).
"""

import redis.asyncio as aioredis

from config.settings import settings

_redis_pool: aioredis.Redis | None = None


async def get_redis() -> aioredis.Redis:
    """Get or create the Redis connection pool."""
    global _redis_pool  # noqa: PLW0603
    if _redis_pool is None:
        _redis_pool = aioredis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
        )
    return _redis_pool


async def hit_fixed_window(key: str, window_seconds: int) -> tuple[int, int]:
    """Count one hit in a fixed window. Returns (hits_in_window, seconds_until_reset)."""
    redis = await get_redis()
    count = int(await redis.incr(key))
    if count == 1:
        await redis.expire(key, window_seconds)
    ttl = int(await redis.ttl(key))
    return count, ttl if ttl > 0 else window_seconds


async def close_redis() -> None:
    """Close the Redis connection pool."""
    global _redis_pool  # noqa: PLW0603
    if _redis_pool is not None:
        await _redis_pool.aclose()
        _redis_pool = None

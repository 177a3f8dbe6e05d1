"""Redis client helpers."""

import logging
from typing import Awaitable, cast

from redis.asyncio import Redis

from snippy.config import settings

logger = logging.getLogger(__name__)

_redis_client: Redis | None = None


class RedisCounterClient:
    """Typed fixed-window counter operations over the shared Redis client."""

    def __init__(self, client: Redis) -> None:
        self._client = client

    async def incr_window(self, key: str, *, window_seconds: int) -> tuple[int, int]:
        """Increment ``key`` and return ``(count, seconds_until_reset)``.

        The expiry is set only when the key is created, so the window is fixed.
        """
        pipe = self._client.pipeline(transaction=True)
        pipe.incr(key)
        pipe.expire(key, window_seconds, nx=True)
        pipe.ttl(key)
        count, _, ttl = await cast(Awaitable[list[int]], pipe.execute())
        return int(count), int(ttl) if int(ttl) > 0 else window_seconds


def get_redis_client() -> Redis:
    """Get a shared Redis client."""
    global _redis_client
    if _redis_client is None:
        _redis_client = Redis.from_url(settings.redis_url, decode_responses=True)
    return _redis_client


def get_redis_counter_client() -> RedisCounterClient:
    """Get typed counter operations on the shared Redis client."""
    return RedisCounterClient(get_redis_client())


async def close_redis() -> None:
    """Close Redis client connections."""
    global _redis_client
    if _redis_client is None:
        return

    await _redis_client.aclose()
    _redis_client = None
    logger.info("Redis connection closed")

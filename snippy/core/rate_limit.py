"""Fixed-window request rate limiting backed by Redis."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from redis.exceptions import RedisError

from snippy.config import Settings
from snippy.core.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)

KEY_PREFIX = "snippy:ratelimit"


class WindowCounter(Protocol):
    async def incr_window(self, key: str, *, window_seconds: int) -> tuple[int, int]: ...


@dataclass(frozen=True)
class Limiter:
    """A named request budget per client and window."""

    name: str
    limit: int
    window_seconds: int

    def key(self, client_id: str) -> str:
        return f"{KEY_PREFIX}:{self.name}:{client_id}"


def build_limiters(settings: Settings) -> dict[str, Limiter]:
    window = settings.rate_limit_window_seconds
    return {
        "global": Limiter("global", settings.rate_limit_global, window),
        "reads": Limiter("reads", settings.rate_limit_public_reads, window),
        "writes": Limiter("writes", settings.rate_limit_writes, window),
        "search": Limiter("search", settings.rate_limit_search, window),
    }


def client_address(peer: str | None, forwarded_for: str | None, *, trusted_hops: int) -> str:
    """Address a request is rate limited under.

    Each trusted proxy appends the address it received the request from to
    ``X-Forwarded-For``, so only the last ``trusted_hops`` entries are
    believed. Anything further left is client supplied and ignored.
    """
    chain = [item.strip() for item in (forwarded_for or "").split(",") if item.strip()]
    chain.append(peer or "unknown")
    if trusted_hops <= 0:
        return chain[-1]
    return chain[max(0, len(chain) - 1 - trusted_hops)]


async def hit(counter: WindowCounter, limiter: Limiter, client_id: str) -> int:
    """Count one request against ``limiter``; returns the remaining budget.

    Raises ``RateLimitExceededError`` once the budget is spent. When Redis is
    unreachable the request is let through.
    """
    try:
        count, reset_in = await counter.incr_window(
            limiter.key(client_id),
            window_seconds=limiter.window_seconds,
        )
    except (RedisError, OSError) as exc:
        logger.warning(
            "Rate limiter unavailable; allowing request",
            extra={"limiter": limiter.name, "error": str(exc)},
        )
        return limiter.limit

    if count > limiter.limit:
        logger.info(
            "Rate limit exceeded",
            extra={"limiter": limiter.name, "client_id": client_id, "count": count},
        )
        raise RateLimitExceededError(limiter.name, retry_after=reset_in)
    return limiter.limit - count

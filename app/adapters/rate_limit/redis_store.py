"""Redis-backed fixed-window rate limiter.

Each identity gets one counter per window, keyed by the window start so all
identities share clock-aligned edges. INCR and EXPIREAT run inside a single
MULTI/EXEC transaction, which makes the check atomic across every process
pointing at the same Redis.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

import redis.asyncio as redis
from redis.exceptions import RedisError

from app.adapters.rate_limit.base import (
    AbstractRateLimiter,
    RateLimitDecision,
    fixed_window_bounds,
)
from app.core.errors import BackingStoreUnavailableError
from app.core.logging import hash_identity

logger = logging.getLogger(__name__)


class RedisFixedWindowRateLimiter(AbstractRateLimiter):
    """Shared fixed-window limiter using one Redis counter per identity and window."""

    def __init__(
        self,
        client: redis.Redis,
        *,
        limit: int,
        window_seconds: int,
        prefix: str = "restore:ratelimit",
        clock: Callable[[], float] = time.time,
    ) -> None:
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")

        self._client = client
        self.limit = limit
        self.window_seconds = window_seconds
        self._prefix = prefix
        self._clock = clock

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "RedisFixedWindowRateLimiter":
        """Build a limiter with a lazily-connecting client for ``url``."""
        client = redis.from_url(
            url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
        )
        return cls(client, **kwargs)

    def _key(self, identity: str, window_start: int) -> str:
        return f"{self._prefix}:{identity}:{window_start}"

    async def _consume(self, identity: str) -> RateLimitDecision:
        now = self._clock()
        window_start, reset_at = fixed_window_bounds(now, self.window_seconds)
        key = self._key(identity, window_start)

        try:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.incr(key)
                pipe.expireat(key, reset_at)
                count, _ = await pipe.execute()
        except (RedisError, OSError) as exc:
            logger.error(
                "rate_limit.store_error",
                extra={
                    "identity_hash": hash_identity(identity),
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                },
            )
            raise BackingStoreUnavailableError(
                code="rate_limit_store_unavailable",
                message="Usage limits cannot be verified right now. Please try again later.",
            ) from exc

        count = int(count)
        return RateLimitDecision(
            allowed=count <= self.limit,
            limit=self.limit,
            remaining=max(0, self.limit - count),
            reset_at=reset_at,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

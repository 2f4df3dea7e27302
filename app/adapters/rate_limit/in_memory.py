"""In-memory fixed-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable

from app.adapters.rate_limit.base import (
    AbstractRateLimiter,
    RateLimitDecision,
    fixed_window_bounds,
)


@dataclass
class _WindowState:
    window_start: int
    count: int


class InMemoryFixedWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter counting hits per identity in a clock-aligned window.

    Intended for local development and tests. Denied checks are counted too,
    mirroring the shared store's INCR semantics.

    Important:
        This limiter is per-process only. If the API runs with multiple workers
        (e.g., multiple Uvicorn/Gunicorn workers), each worker will enforce its
        own independent limits.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            limit: Maximum number of allowed checks per window.
            window_seconds: Size of the fixed window in seconds.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If limit or window_seconds are invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")

        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.RLock()
        self._state_by_identity: dict[str, _WindowState] = {}

    async def _consume(self, identity: str) -> RateLimitDecision:
        now = self._clock()
        window_start, reset_at = fixed_window_bounds(now, self.window_seconds)

        with self._lock:
            state = self._state_by_identity.get(identity)
            if state is None or state.window_start != window_start:
                state = _WindowState(window_start=window_start, count=0)
                self._state_by_identity[identity] = state
            state.count += 1
            count = state.count

        return RateLimitDecision(
            allowed=count <= self.limit,
            limit=self.limit,
            remaining=max(0, self.limit - count),
            reset_at=reset_at,
        )

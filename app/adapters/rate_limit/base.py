"""Rate limiter interfaces.

The API depends on this abstraction (not the concrete implementation) so the
counter store can be Redis in production and process memory in development.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass

from app.core.errors import InvalidIdentityError


def fixed_window_bounds(now: float, window_seconds: int) -> tuple[int, int]:
    """Compute clock-aligned window boundaries for a timestamp.

    Every identity shares the same window edges.

    Args:
        now: UNIX time in seconds.
        window_seconds: Window size in seconds.

    Returns:
        Tuple of (window_start_epoch_seconds, reset_at_epoch_seconds).
    """
    window_start = int(now // window_seconds) * window_seconds
    return window_start, window_start + window_seconds


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a single quota check.

    Attributes:
        allowed: Whether the request may proceed.
        limit: Permits per window.
        remaining: Permits left in the current window (0 when blocked).
        reset_at: UNIX epoch seconds when the current window ends.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: float

    def retry_after_seconds(self, now: float) -> int:
        """Whole seconds until the window resets, never negative."""
        return max(0, int(math.ceil(self.reset_at - now)))

    def time_until_reset(self, now: float) -> tuple[int, int]:
        """Split the time until reset into (hours, minutes), rounded down."""
        remaining_s = max(0.0, self.reset_at - now)
        hours = int(remaining_s // 3600)
        minutes = int((remaining_s - hours * 3600) // 60)
        return hours, minutes


class AbstractRateLimiter(ABC):
    """Interface for per-identity fixed-window rate limiters.

    ``check`` is not idempotent: every call consumes accounting state in the
    backing store, so callers must invoke it at most once per request.
    """

    limit: int
    window_seconds: int

    async def check(self, identity: str) -> RateLimitDecision:
        """Consume one permit for ``identity`` and report the decision.

        Raises:
            InvalidIdentityError: If identity is empty or blank.
            BackingStoreUnavailableError: If the counter store is unreachable.
        """
        if not identity or not identity.strip():
            raise InvalidIdentityError(
                code="invalid_identity",
                message="A non-empty identity is required for quota checks",
            )
        return await self._consume(identity)

    @abstractmethod
    async def _consume(self, identity: str) -> RateLimitDecision:
        """Atomically count one hit for a validated identity."""
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release backend resources (no-op by default)."""
        return None

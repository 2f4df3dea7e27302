"""Quota gate between an authenticated identity and the job runner.

This module turns a limiter decision into the request-level policy:

- No limiter configured → every request is allowed.
- Denied decision → RateLimitExceededError with retry details and a
  human-readable renewal message.
- Counter store unreachable → fail closed (BackingStoreUnavailableError) unless
  APP_RATE_LIMIT_FAIL_OPEN is set, in which case the request is allowed.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from fastapi import Request

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitDecision
from app.core.config import settings
from app.core.errors import BackingStoreUnavailableError, RateLimitExceededError
from app.core.logging import hash_identity

logger = logging.getLogger(__name__)


def get_rate_limiter(request: Request) -> AbstractRateLimiter | None:
    """FastAPI dependency returning the app's limiter (None when disabled)."""
    return getattr(request.app.state, "rate_limiter", None)


def format_renewal_message(hours: int, minutes: int, support_contact: str | None = None) -> str:
    """Build the user-facing quota renewal text.

    Example:
        >>> format_renewal_message(3, 5)
        'Your generations will renew in 3 hours and 5 minutes.'
    """
    message = f"Your generations will renew in {hours} hours and {minutes} minutes."
    if support_contact:
        message += f" Contact {support_contact} if you have any questions."
    return message


def build_rate_limit_headers(decision: RateLimitDecision) -> dict[str, str]:
    """Headers echoed on allowed requests."""
    return {
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(decision.remaining),
    }


async def check_quota(
    limiter: AbstractRateLimiter | None,
    identity: str,
    *,
    fail_open: bool | None = None,
    clock: Callable[[], float] = time.time,
) -> RateLimitDecision | None:
    """Consult the limiter exactly once for ``identity``.

    Args:
        limiter: Limiter capability, or None when rate limiting is off.
        identity: Authenticated quota holder.
        fail_open: Store outage policy; defaults to settings.
        clock: Wall-clock source used for the retry-after breakdown.

    Returns:
        The allowing decision, or None when no decision was made (no limiter,
        or store outage under fail-open).

    Raises:
        InvalidIdentityError: If identity is empty.
        RateLimitExceededError: If the quota for the current window is spent.
        BackingStoreUnavailableError: If the store is down and policy is fail-closed.
    """
    if limiter is None:
        return None

    if fail_open is None:
        fail_open = settings.app.rate_limit_fail_open

    identity_hash = hash_identity(identity) if identity else None

    try:
        decision = await limiter.check(identity)
    except BackingStoreUnavailableError:
        if not fail_open:
            raise
        logger.warning(
            "rate_limit.store_unavailable_fail_open",
            extra={"identity_hash": identity_hash},
        )
        return None

    if decision.allowed:
        logger.info(
            "rate_limit.allowed",
            extra={
                "identity_hash": identity_hash,
                "limit": decision.limit,
                "remaining": decision.remaining,
                "window_s": limiter.window_seconds,
            },
        )
        return decision

    now = clock()
    hours, minutes = decision.time_until_reset(now)
    retry_after = decision.retry_after_seconds(now)
    logger.warning(
        "rate_limit.exceeded",
        extra={
            "identity_hash": identity_hash,
            "limit": decision.limit,
            "remaining": decision.remaining,
            "window_s": limiter.window_seconds,
            "retry_after_s": retry_after,
        },
    )
    raise RateLimitExceededError(
        code="rate_limit_exceeded",
        message=format_renewal_message(hours, minutes, settings.app.support_contact),
        details={
            "limit": decision.limit,
            "remaining": decision.remaining,
            "reset_at": decision.reset_at,
            "retry_after": retry_after,
            "hours": hours,
            "minutes": minutes,
        },
    )

"""Factory for the optional rate limiter capability."""

from __future__ import annotations

import logging

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from app.adapters.rate_limit.redis_store import RedisFixedWindowRateLimiter
from app.core.config import AppSettings, settings

logger = logging.getLogger(__name__)


def create_rate_limiter(app_settings: AppSettings | None = None) -> AbstractRateLimiter | None:
    """Build the configured rate limiter, or None when no store is configured.

    Returns:
        A limiter instance, or None meaning every request is allowed.
    """
    cfg = app_settings or settings.app

    if not cfg.rate_limit_enabled:
        logger.info("rate_limit.disabled", extra={"reason": "rate_limit_enabled_false"})
        return None

    if cfg.rate_limit_backend == "memory":
        logger.warning(
            "rate_limit.in_memory",
            extra={"reason": "per_process_counters", "limit": cfg.rate_limit_requests},
        )
        return InMemoryFixedWindowRateLimiter(
            limit=cfg.rate_limit_requests,
            window_seconds=cfg.rate_limit_window_seconds,
        )

    if not cfg.rate_limit_redis_url:
        logger.info("rate_limit.disabled", extra={"reason": "no_backing_store"})
        return None

    return RedisFixedWindowRateLimiter.from_url(
        cfg.rate_limit_redis_url,
        limit=cfg.rate_limit_requests,
        window_seconds=cfg.rate_limit_window_seconds,
        prefix=cfg.rate_limit_prefix,
    )

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.core.rate_limit import get_rate_limiter

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(limiter: AbstractRateLimiter | None = Depends(get_rate_limiter)) -> dict:
    """Liveness check.

    Returns:
        dict: ``status`` ("ok") and whether a per-identity quota is enforced.
    """

    return {"status": "ok", "rate_limit_enabled": limiter is not None}

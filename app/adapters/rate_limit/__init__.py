"""Rate limiting adapters.

A small abstraction layer over the counter store: Redis when the quota has
to hold across processes, process memory for local development.
"""

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitDecision
from app.adapters.rate_limit.factory import create_rate_limiter

__all__ = [
    "AbstractRateLimiter",
    "RateLimitDecision",
    "create_rate_limiter",
]

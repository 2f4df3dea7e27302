"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep backward compatibility while encouraging
    consistent shapes across the codebase.
    """

    code: str
    message: str
    hint: str
    http_status: int
    limit: int
    remaining: int
    reset_at: float
    retry_after: int
    hours: int
    minutes: int
    job_id: str
    runner_status: str
    timeout_seconds: float
    polls: int
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class InvalidIdentityError(ValidationAppError):
    """Raised when a quota check is attempted without an identity."""


class AuthenticationAppError(AppError):
    """Raised when the caller has no valid identity."""


class RateLimitExceededError(AppError):
    """Raised when the caller's quota for the current window is spent."""


class BackingStoreUnavailableError(AppError):
    """Raised when the rate limit counter store cannot be reached."""


class JobRunnerError(AppError):
    """Base error for external job runner failures."""


class JobSubmissionError(JobRunnerError):
    """Raised when the runner is unreachable or rejects a job at submit time."""


class JobRunnerUnavailableError(JobRunnerError):
    """Raised when a status check against the runner fails."""


class JobFailedError(JobRunnerError):
    """Raised when the runner reports the job as failed."""


class JobTimedOutError(JobRunnerError):
    """Raised when a job does not reach a terminal state before its deadline."""

"""Global exception handlers for consistent error responses.

This module provides FastAPI exception handlers that intercept all errors
(domain and unexpected) and return consistent JSON responses with proper
HTTP status codes and traceability.

Design:
- AppError subclasses → appropriate HTTP status (400, 403, 429, 502, 503, 504)
- Unexpected Exception → generic 500 (safety net)
- All responses include request_id for distributed tracing
"""

import logging
from fastapi import Request
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.errors import (
    AppError,
    AuthenticationAppError,
    BackingStoreUnavailableError,
    JobFailedError,
    JobRunnerError,
    JobTimedOutError,
    RateLimitExceededError,
)
from app.core.logging import get_request_id
from app.core.rate_limit import build_rate_limit_headers

logger = logging.getLogger(__name__)


def _status_code_for(exc: AppError) -> int:
    """Map an AppError subclass to its HTTP status code."""
    if isinstance(exc, AuthenticationAppError):
        return 403
    if isinstance(exc, RateLimitExceededError):
        return 429
    if isinstance(exc, BackingStoreUnavailableError):
        return 503
    if isinstance(exc, JobTimedOutError):
        return 504
    if isinstance(exc, (JobFailedError, JobRunnerError)):
        return 502
    return 400


def _rate_limit_headers(exc: RateLimitExceededError) -> dict[str, str]:
    details = exc.details or {}
    headers: dict[str, str] = {}
    if "retry_after" in details:
        headers["Retry-After"] = str(details["retry_after"])
    if "limit" in details:
        headers["X-RateLimit-Limit"] = str(details["limit"])
    if "remaining" in details:
        headers["X-RateLimit-Remaining"] = str(details["remaining"])
    if "reset_at" in details:
        headers["X-RateLimit-Reset"] = str(int(details["reset_at"]))
    return headers


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    Routes domain errors to appropriate HTTP status codes:
    - ValidationAppError → 400 Bad Request (client fault)
    - AuthenticationAppError → 403 Forbidden (no identity)
    - RateLimitExceededError → 429 Too Many Requests (with retry headers)
    - JobSubmissionError / JobFailedError → 502 Bad Gateway (runner fault)
    - BackingStoreUnavailableError → 503 Service Unavailable
    - JobTimedOutError → 504 Gateway Timeout

    All responses include:
    - error.code: Machine-readable error code
    - error.message: Human-readable message
    - error.request_id: For distributed tracing
    - error.details: Optional structured context

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with appropriate status code and error details.
    """
    status_code = _status_code_for(exc)

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "request_id": get_request_id(),
        }
    )

    error_content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }

    # Include details only if present (optional structured context)
    if exc.details:
        error_content["details"] = exc.details

    headers: dict[str, str] | None = None
    if settings.app.rate_limit_include_headers:
        if isinstance(exc, RateLimitExceededError):
            headers = _rate_limit_headers(exc) or None
        else:
            # Errors raised after an allowed quota check still report the quota
            decision = getattr(request.state, "rate_limit_decision", None)
            if decision is not None:
                headers = build_rate_limit_headers(decision)

    return JSONResponse(
        status_code=status_code,
        content={"error": error_content},
        headers=headers,
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Catches any exception not handled by specific handlers.
    Logs detailed information for debugging while returning generic message.
    Prevents information leakage (no stack traces to client).

    Args:
        request: FastAPI request object.
        exc: Exception instance (unexpected).

    Returns:
        JSONResponse with generic error (no implementation details leaked).
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        }
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": get_request_id(),
            }
        },
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with FastAPI app.

    Must be called during app initialization, before route registration.
    Order matters: specific handlers registered before general fallback.

    Args:
        app: FastAPI application instance.
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)

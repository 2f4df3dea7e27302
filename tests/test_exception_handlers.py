"""Tests for global exception handlers.

Validates that every error type maps to its HTTP status code, that the JSON
shape is consistent, and that unexpected errors leak no internals.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.core.errors import (
    AppError,
    AuthenticationAppError,
    BackingStoreUnavailableError,
    InvalidIdentityError,
    JobFailedError,
    JobSubmissionError,
    JobTimedOutError,
    RateLimitExceededError,
    ValidationAppError,
)
from app.core.exception_handlers import general_exception_handler, setup_exception_handlers


@pytest.fixture
def app_with_handlers() -> FastAPI:
    """Create FastAPI app with exception handlers registered."""
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    return TestClient(app_with_handlers)


def _raise_from(app: FastAPI, path: str, exc: Exception) -> None:
    @app.get(path)
    async def _endpoint():
        raise exc


class TestAppErrorHandler:
    """Test handler for AppError and subclasses."""

    @pytest.mark.parametrize(
        ("exc", "status_code"),
        [
            (ValidationAppError(code="invalid_image_url", message="bad url"), 400),
            (InvalidIdentityError(code="invalid_identity", message="empty"), 400),
            (AuthenticationAppError(code="unauthenticated", message="Login to upload."), 403),
            (RateLimitExceededError(code="rate_limit_exceeded", message="renews later"), 429),
            (JobSubmissionError(code="job_submission_failed", message="rejected"), 502),
            (JobFailedError(code="job_failed", message="model error"), 502),
            (BackingStoreUnavailableError(code="rate_limit_store_unavailable", message="down"), 503),
            (JobTimedOutError(code="job_timed_out", message="too slow"), 504),
        ],
    )
    def test_status_code_mapping(self, client, app_with_handlers, exc: AppError, status_code: int) -> None:
        _raise_from(app_with_handlers, "/boom", exc)

        response = client.get("/boom")

        assert response.status_code == status_code
        error = response.json()["error"]
        assert error["code"] == exc.code
        assert error["message"] == exc.message
        assert "request_id" in error
        assert "details" not in error

    def test_rate_limit_error_sets_retry_headers(self, client, app_with_handlers) -> None:
        _raise_from(
            app_with_handlers,
            "/limited",
            RateLimitExceededError(
                code="rate_limit_exceeded",
                message="Your generations will renew in 5 hours and 2 minutes.",
                details={
                    "limit": 2,
                    "remaining": 0,
                    "reset_at": 1_700_000_000.0,
                    "retry_after": 18120,
                    "hours": 5,
                    "minutes": 2,
                },
            ),
        )

        response = client.get("/limited")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "18120"
        assert response.headers["X-RateLimit-Limit"] == "2"
        assert response.headers["X-RateLimit-Remaining"] == "0"
        assert response.headers["X-RateLimit-Reset"] == "1700000000"
        assert response.json()["error"]["details"]["hours"] == 5


class TestGeneralExceptionHandler:
    """Test fallback handler for unexpected exceptions."""

    def test_unexpected_exception_handler_registered(self, app_with_handlers: FastAPI) -> None:
        assert Exception in app_with_handlers.exception_handlers

    def test_general_exception_handler_hides_internals(self) -> None:
        request = AsyncMock()
        request.url.path = "/v1/restore"
        request.method = "POST"

        exc = RuntimeError("redis://:hunter2@cache:6379 refused connection")
        response = asyncio.run(general_exception_handler(request, exc))

        data = json.loads(bytes(response.body).decode())
        assert response.status_code == 500
        assert data["error"]["code"] == "internal_server_error"
        assert "hunter2" not in data["error"]["message"]
        assert "RuntimeError" not in bytes(response.body).decode()
        assert "request_id" in data["error"]


def test_multiple_handler_setups_does_not_fail() -> None:
    app = FastAPI()

    setup_exception_handlers(app)
    setup_exception_handlers(app)

    assert AppError in app.exception_handlers

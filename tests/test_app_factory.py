"""Tests for application wiring and shutdown."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI

from app.core.app_factory import _lifespan, create_app


@pytest.fixture
def app_state() -> FastAPI:
    app = FastAPI()
    app.state.job_runner = MagicMock(aclose=AsyncMock())
    app.state.rate_limiter = MagicMock(aclose=AsyncMock())
    return app


@pytest.mark.asyncio
async def test_shutdown_closes_runner_and_limiter(app_state) -> None:
    async with _lifespan(app_state):
        pass

    app_state.state.job_runner.aclose.assert_awaited_once()
    app_state.state.rate_limiter.aclose.assert_awaited_once()


@pytest.mark.asyncio
async def test_limiter_closed_when_runner_close_fails(app_state) -> None:
    app_state.state.job_runner.aclose.side_effect = RuntimeError("client already closed")

    with pytest.raises(RuntimeError):
        async with _lifespan(app_state):
            pass

    app_state.state.rate_limiter.aclose.assert_awaited_once()


@pytest.mark.asyncio
async def test_shutdown_without_limiter(app_state) -> None:
    app_state.state.rate_limiter = None

    async with _lifespan(app_state):
        pass

    app_state.state.job_runner.aclose.assert_awaited_once()


def test_injected_capabilities_are_wired(scripted_runner) -> None:
    runner = scripted_runner()

    app = create_app(rate_limiter=None, job_runner=runner)

    service = app.state.restoration_service
    assert app.state.job_runner is runner
    assert service.rate_limiter is None
    assert service.orchestrator.runner is runner

"""Application factory for FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) and
wires the request-handling capabilities: the optional rate limiter and the job
runner are built once, stored on ``app.state`` and closed on shutdown.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.adapters.job_runner import AbstractJobRunner, create_job_runner
from app.adapters.rate_limit import AbstractRateLimiter, create_rate_limiter
from app.api.routes import health_router, restore_router
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.openapi import apply_openapi_customizations
from app.services.job_orchestrator import JobOrchestrator
from app.services.restoration_service import RestorationService

logger = logging.getLogger(__name__)

_UNSET = object()


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    logger.info(
        "application_starting",
        extra={
            "app_env": settings.app_env,
            "rate_limit_enabled": app.state.rate_limiter is not None,
        },
    )
    yield
    try:
        await app.state.job_runner.aclose()
    finally:
        if app.state.rate_limiter is not None:
            await app.state.rate_limiter.aclose()
    logger.info("application_shutdown_complete")


def create_app(
    *,
    rate_limiter: AbstractRateLimiter | None | object = _UNSET,
    job_runner: AbstractJobRunner | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        rate_limiter: Limiter to use; None disables rate limiting. Built from
            settings when omitted.
        job_runner: Runner client to use. Built from settings when omitted.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log, debug=settings.app.debug)

    if rate_limiter is _UNSET:
        rate_limiter = create_rate_limiter()
    if job_runner is None:
        job_runner = create_job_runner()

    app = FastAPI(
        title="Image Restore API",
        description=(
            "Restores/transforms an image through an external prediction service. "
            "Each caller has a fixed generation quota per window; requests beyond "
            "it receive 429 with the renewal time."
        ),
        version="0.1.0",
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
        lifespan=_lifespan,
    )

    orchestrator = JobOrchestrator(
        job_runner,
        poll_interval_seconds=settings.runner.poll_interval_seconds,
        timeout_seconds=settings.runner.job_timeout_seconds,
        max_polls=settings.runner.max_polls,
        cancel_on_timeout=settings.runner.cancel_on_timeout,
    )
    app.state.rate_limiter = rate_limiter
    app.state.job_runner = job_runner
    app.state.restoration_service = RestorationService(
        orchestrator=orchestrator,
        runner_settings=settings.runner,
        rate_limiter=rate_limiter,
        fail_open=settings.app.rate_limit_fail_open,
    )

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(restore_router, prefix="/v1")
    app.include_router(health_router)

    # OpenAPI customizations (security scheme, tags, exemptions)
    apply_openapi_customizations(app)

    return app

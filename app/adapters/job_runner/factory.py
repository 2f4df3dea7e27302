"""Factory for the job runner client."""

from app.adapters.job_runner.base import AbstractJobRunner
from app.adapters.job_runner.replicate_client import ReplicateJobRunner
from app.core.config import RunnerSettings, settings
from app.core.errors import ValidationAppError


def create_job_runner(runner_settings: RunnerSettings | None = None) -> AbstractJobRunner:
    """Instantiate the runner client from configuration.

    Raises:
        ValidationAppError: If the runner credential is missing.
    """
    cfg = runner_settings or settings.runner

    if not cfg.api_token:
        raise ValidationAppError(
            code="runner_missing_api_token",
            message="Job runner requires REPLICATE_API_TOKEN environment variable",
        )

    return ReplicateJobRunner(
        api_token=cfg.api_token,
        base_url=cfg.base_url,
        timeout_seconds=cfg.request_timeout_seconds,
    )

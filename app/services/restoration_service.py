"""Image restoration flow: quota check, payload construction, job orchestration."""

from __future__ import annotations

from dataclasses import dataclass

from app.adapters.job_runner.base import JobRequest
from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitDecision
from app.core.config import RunnerSettings
from app.core.errors import ValidationAppError
from app.core.rate_limit import check_quota
from app.services.job_orchestrator import JobOrchestrator, JobOutcome


def build_job_request(image_url: str, runner_settings: RunnerSettings) -> JobRequest:
    """Build the single job payload for an image.

    Configured extra input is merged first so the core fields always win.

    Raises:
        ValidationAppError: If image_url is not an http(s) URL.
    """
    if not image_url.startswith(("http://", "https://")):
        raise ValidationAppError(
            code="invalid_image_url",
            message="image_url must be an http(s) URL",
        )

    return JobRequest(
        version=runner_settings.model_version,
        input={
            **runner_settings.extra_input,
            "image": image_url,
            "style": runner_settings.style,
            "prompt": runner_settings.prompt,
            "instant_id_strength": runner_settings.instant_id_strength,
        },
    )


@dataclass(frozen=True)
class RestoreResult:
    outcome: JobOutcome
    decision: RateLimitDecision | None


class RestorationService:
    """Composes the optional rate limiter with the job orchestrator.

    The quota is consulted exactly once per call and before any payload is
    submitted; a denial or store failure raises without touching the runner.
    """

    def __init__(
        self,
        orchestrator: JobOrchestrator,
        runner_settings: RunnerSettings,
        rate_limiter: AbstractRateLimiter | None = None,
        fail_open: bool = False,
    ) -> None:
        self.orchestrator = orchestrator
        self.runner_settings = runner_settings
        self.rate_limiter = rate_limiter
        self.fail_open = fail_open

    async def restore(self, identity: str, image_url: str) -> RestoreResult:
        # An invalid payload must not cost the caller a permit
        request = build_job_request(image_url, self.runner_settings)
        decision = await check_quota(self.rate_limiter, identity, fail_open=self.fail_open)

        outcome = await self.orchestrator.run(request)

        return RestoreResult(outcome=outcome, decision=decision)

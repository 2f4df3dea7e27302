from typing import Annotated, assert_never

from fastapi import APIRouter, Depends, Request, Response

from app.core.auth import get_current_identity
from app.core.config import settings
from app.core.errors import JobFailedError, JobSubmissionError, JobTimedOutError
from app.core.rate_limit import build_rate_limit_headers
from app.schemas.restore import RestoreRequest, RestoreResponse
from app.services.job_orchestrator import FailureStage, JobFailed, JobSucceeded, JobTimedOut
from app.services.restoration_service import RestorationService

router = APIRouter(tags=["Restore"])


def get_restoration_service(request: Request) -> RestorationService:
    """Return the service wired by the app factory."""
    return request.app.state.restoration_service


@router.post("/restore", response_model=RestoreResponse)
async def restore_image(
    body: RestoreRequest,
    request: Request,
    response: Response,
    identity: Annotated[str, Depends(get_current_identity)],
    service: Annotated[RestorationService, Depends(get_restoration_service)],
) -> RestoreResponse:
    """Restore/transform an image for the authenticated caller.

    The caller's quota is checked once; when allowed, one job is submitted to
    the runner and awaited until it finishes or times out.

    Returns:
        RestoreResponse: Job id and ordered output URLs.

    Raises:
        RateLimitExceededError: 429 with renewal time when the quota is spent.
        JobSubmissionError: 502 when the runner is unreachable or rejects the job.
        JobFailedError: 502 with the runner's error text.
        JobTimedOutError: 504 when the job does not finish in time.
    """
    result = await service.restore(identity, str(body.image_url))

    # Read by the error handler so 502/504 responses carry the quota headers too
    request.state.rate_limit_decision = result.decision
    if result.decision is not None and settings.app.rate_limit_include_headers:
        response.headers.update(build_rate_limit_headers(result.decision))

    outcome = result.outcome
    match outcome:
        case JobSucceeded(job_id=job_id, output=output):
            return RestoreResponse(job_id=job_id, output=list(output))
        case JobFailed(stage=FailureStage.SUBMISSION, reason=reason):
            raise JobSubmissionError(code="job_submission_failed", message=reason)
        case JobFailed(reason=reason, job_id=job_id):
            raise JobFailedError(
                code="job_failed",
                message=f"Failed to restore image: {reason}",
                details={"job_id": job_id} if job_id else None,
            )
        case JobTimedOut(job_id=job_id, polls=polls):
            raise JobTimedOutError(
                code="job_timed_out",
                message="Image restoration did not finish in time. Please try again.",
                details={
                    "job_id": job_id,
                    "polls": polls,
                    "timeout_seconds": service.orchestrator.timeout_seconds,
                },
            )
        case _:
            assert_never(outcome)

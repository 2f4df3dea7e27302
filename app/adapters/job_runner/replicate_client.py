"""Replicate predictions API adapter."""

import logging
from typing import Any

import httpx

from app.adapters.job_runner.base import (
    AbstractJobRunner,
    JobHandle,
    JobPoll,
    JobRequest,
    JobStatus,
)
from app.core.errors import JobRunnerUnavailableError, JobSubmissionError

logger = logging.getLogger(__name__)

# Replicate prediction states mapped onto the closed JobStatus variant
_STATUS_MAP: dict[str, JobStatus] = {
    "starting": JobStatus.PENDING,
    "processing": JobStatus.PENDING,
    "succeeded": JobStatus.SUCCEEDED,
    "failed": JobStatus.FAILED,
    "canceled": JobStatus.FAILED,
}


def _normalize_output(output: Any) -> tuple[str, ...]:
    """Coerce a prediction output (single URI or list of URIs) to a tuple."""
    if output is None:
        return ()
    if isinstance(output, str):
        return (output,)
    if isinstance(output, (list, tuple)):
        return tuple(str(item) for item in output if item is not None)
    return (str(output),)


def parse_prediction(body: dict[str, Any]) -> JobPoll:
    """Translate a prediction resource into a JobPoll."""
    raw_status = str(body.get("status") or "").lower()
    status = _STATUS_MAP.get(raw_status, JobStatus.PENDING)

    error: str | None = None
    if status is JobStatus.FAILED:
        error = body.get("error") or ("Job was canceled" if raw_status == "canceled" else "Job failed")
        error = str(error)

    return JobPoll(status=status, output=_normalize_output(body.get("output")), error=error)


class ReplicateJobRunner(AbstractJobRunner):
    """Client for submitting and polling Replicate predictions.

    Uses a single pooled httpx.AsyncClient for the process lifetime.
    """

    def __init__(
        self,
        api_token: str,
        base_url: str = "https://api.replicate.com/v1",
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the HTTP client.

        Args:
            api_token: Static runner credential.
            base_url: API root; predictions are created at {base_url}/predictions.
            timeout_seconds: Timeout applied to every HTTP call.
            transport: Optional transport override (tests).
        """
        self.client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={
                "Authorization": f"Token {api_token}",
                "Content-Type": "application/json",
            },
            timeout=timeout_seconds,
            transport=transport,
        )

    async def submit(self, request: JobRequest) -> JobHandle:
        try:
            response = await self.client.post("/predictions", json=request.to_payload())
        except httpx.HTTPError as exc:
            logger.error(
                "job.submit_unreachable",
                extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
            )
            raise JobSubmissionError(
                code="job_submission_failed",
                message="The image service could not be reached.",
            ) from exc

        if response.is_error:
            logger.error(
                "job.submit_rejected",
                extra={
                    "http_status": response.status_code,
                    "runner_body": response.text[:500],
                },
            )
            raise JobSubmissionError(
                code="job_submission_failed",
                message="The image service rejected the request.",
                details={"http_status": response.status_code},
            )

        try:
            body = response.json()
            job_id = str(body["id"])
            urls = body.get("urls") or {}
            status_url = str(urls["get"])
        except (ValueError, KeyError, TypeError) as exc:
            logger.error(
                "job.submit_malformed_response",
                extra={"runner_body": response.text[:500]},
            )
            raise JobSubmissionError(
                code="job_submission_failed",
                message="The image service returned an unexpected response.",
            ) from exc

        handle = JobHandle(
            job_id=job_id,
            status_url=status_url,
            cancel_url=urls.get("cancel"),
            snapshot=parse_prediction(body),
        )
        logger.info(
            "job.submitted",
            extra={"job_id": job_id, "runner_status": body.get("status")},
        )
        return handle

    async def poll(self, handle: JobHandle) -> JobPoll:
        try:
            response = await self.client.get(handle.status_url)
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error(
                "job.poll_error",
                extra={
                    "job_id": handle.job_id,
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                },
            )
            raise JobRunnerUnavailableError(
                code="job_status_unavailable",
                message="Could not fetch the job status.",
                details={"job_id": handle.job_id},
            ) from exc

        if not isinstance(body, dict):
            logger.error(
                "job.poll_malformed_response",
                extra={"job_id": handle.job_id, "runner_body": response.text[:500]},
            )
            raise JobRunnerUnavailableError(
                code="job_status_unavailable",
                message="The image service returned an unexpected status response.",
                details={"job_id": handle.job_id},
            )

        return parse_prediction(body)

    async def cancel(self, handle: JobHandle) -> None:
        if not handle.cancel_url:
            return
        response = await self.client.post(handle.cancel_url)
        response.raise_for_status()
        logger.info("job.canceled", extra={"job_id": handle.job_id})

    async def aclose(self) -> None:
        await self.client.aclose()

"""Orchestration of one external job per request.

Submits a job exactly once, then polls the runner at a fixed interval until
the job reaches a terminal state or the deadline passes. Every path ends in
exactly one JobOutcome; nothing is retried at this layer.

Cancellation: when the deadline passes (and cancel_on_timeout is set) or the
calling task is cancelled because the client went away, the runner is asked
to cancel the job on a best-effort basis.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Union

from app.adapters.job_runner.base import (
    AbstractJobRunner,
    JobHandle,
    JobPoll,
    JobRequest,
    JobStatus,
)
from app.core.errors import JobRunnerUnavailableError, JobSubmissionError

logger = logging.getLogger(__name__)


class FailureStage(enum.Enum):
    SUBMISSION = "submission"
    EXECUTION = "execution"


@dataclass(frozen=True)
class JobSucceeded:
    job_id: str
    output: tuple[str, ...]


@dataclass(frozen=True)
class JobFailed:
    reason: str
    stage: FailureStage
    job_id: str | None = None


@dataclass(frozen=True)
class JobTimedOut:
    job_id: str
    elapsed_seconds: float
    polls: int


JobOutcome = Union[JobSucceeded, JobFailed, JobTimedOut]


class JobOrchestrator:
    """Runs a single job to completion, failure, or timeout.

    Attributes:
        runner: External job runner client.
        poll_interval_seconds: Wait between two status checks.
        timeout_seconds: Deadline measured from submission.
        max_polls: Optional cap on status checks.
        cancel_on_timeout: Ask the runner to cancel jobs that time out.
    """

    def __init__(
        self,
        runner: AbstractJobRunner,
        *,
        poll_interval_seconds: float = 1.0,
        timeout_seconds: float = 120.0,
        max_polls: int | None = None,
        cancel_on_timeout: bool = True,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if poll_interval_seconds <= 0:
            raise ValueError("poll_interval_seconds must be > 0")
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")
        if max_polls is not None and max_polls < 1:
            raise ValueError("max_polls must be >= 1")

        self.runner = runner
        self.poll_interval_seconds = poll_interval_seconds
        self.timeout_seconds = timeout_seconds
        self.max_polls = max_polls
        self.cancel_on_timeout = cancel_on_timeout
        self._sleep = sleep
        self._clock = clock

    async def run(self, request: JobRequest) -> JobOutcome:
        """Submit ``request`` once and wait for its terminal outcome."""
        try:
            handle = await self.runner.submit(request)
        except JobSubmissionError as exc:
            return JobFailed(reason=exc.message, stage=FailureStage.SUBMISSION)

        if handle.snapshot is not None and handle.snapshot.status.is_terminal:
            return self._terminal_outcome(handle, handle.snapshot, polls=0)

        try:
            return await self._wait(handle)
        except asyncio.CancelledError:
            logger.warning("job.watch_cancelled", extra={"job_id": handle.job_id})
            await self._cancel_quietly(handle)
            raise

    async def _wait(self, handle: JobHandle) -> JobOutcome:
        started = self._clock()
        deadline = started + self.timeout_seconds
        polls = 0

        while True:
            remaining = deadline - self._clock()
            if remaining <= 0:
                return await self._time_out(handle, elapsed=self._clock() - started, polls=polls)
            try:
                # A status check in flight is bounded by the same deadline.
                result = await asyncio.wait_for(self.runner.poll(handle), timeout=remaining)
            except asyncio.TimeoutError:
                logger.warning("job.poll_timed_out", extra={"job_id": handle.job_id, "poll": polls + 1})
                return await self._time_out(handle, elapsed=self._clock() - started, polls=polls)
            except JobRunnerUnavailableError as exc:
                return JobFailed(
                    reason=exc.message,
                    stage=FailureStage.EXECUTION,
                    job_id=handle.job_id,
                )
            polls += 1
            logger.debug(
                "job.poll",
                extra={"job_id": handle.job_id, "poll": polls, "status": result.status.value},
            )

            if result.status.is_terminal:
                return self._terminal_outcome(handle, result, polls=polls)

            now = self._clock()
            out_of_polls = self.max_polls is not None and polls >= self.max_polls
            if out_of_polls or now + self.poll_interval_seconds > deadline:
                return await self._time_out(handle, elapsed=now - started, polls=polls)

            await self._sleep(self.poll_interval_seconds)

    def _terminal_outcome(self, handle: JobHandle, result: JobPoll, *, polls: int) -> JobOutcome:
        if result.status is JobStatus.SUCCEEDED:
            logger.info(
                "job.succeeded",
                extra={"job_id": handle.job_id, "polls": polls, "outputs": len(result.output)},
            )
            return JobSucceeded(job_id=handle.job_id, output=result.output)

        logger.warning(
            "job.failed",
            extra={"job_id": handle.job_id, "polls": polls, "runner_error": result.error},
        )
        return JobFailed(
            reason=result.error or "Job failed",
            stage=FailureStage.EXECUTION,
            job_id=handle.job_id,
        )

    async def _time_out(self, handle: JobHandle, *, elapsed: float, polls: int) -> JobTimedOut:
        logger.warning(
            "job.timed_out",
            extra={
                "job_id": handle.job_id,
                "polls": polls,
                "elapsed_s": round(elapsed, 3),
                "timeout_s": self.timeout_seconds,
            },
        )
        if self.cancel_on_timeout:
            await self._cancel_quietly(handle)
        return JobTimedOut(job_id=handle.job_id, elapsed_seconds=elapsed, polls=polls)

    async def _cancel_quietly(self, handle: JobHandle) -> None:
        try:
            await self.runner.cancel(handle)
        except Exception as exc:
            # The job outcome is already decided; a failed cancel only leaks runner time.
            logger.warning(
                "job.cancel_failed",
                extra={
                    "job_id": handle.job_id,
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                },
            )

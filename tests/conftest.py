"""Pytest configuration and fixtures shared across all test modules.

Environment defaults are set before any app import so that the global
settings object is built from them.
"""

import asyncio
import os

import pytest

os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("REPLICATE_API_TOKEN", "test-runner-token")
os.environ.setdefault("APP_API_KEY_REQUIRED", "true")
os.environ.setdefault("APP_API_KEYS", "test-api-key-123=a@x.com,test-api-key-456")
os.environ.setdefault("APP_RATE_LIMIT_BACKEND", "redis")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from app.adapters.job_runner.base import (  # noqa: E402
    AbstractJobRunner,
    JobHandle,
    JobPoll,
    JobRequest,
    JobStatus,
)


class FakeTime:
    """Monotonic clock and sleep that advance together without waiting."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def clock(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class ScriptedRunner(AbstractJobRunner):
    """Runner returning scripted poll results; pending forever once exhausted."""

    def __init__(
        self,
        polls: list[JobPoll | Exception] | None = None,
        *,
        submit_error: Exception | None = None,
        snapshot: JobPoll | None = None,
    ) -> None:
        self.polls = list(polls or [])
        self.submit_error = submit_error
        self.snapshot = snapshot
        self.submitted: list[JobRequest] = []
        self.polled: list[JobHandle] = []
        self.cancelled: list[str] = []

    async def submit(self, request: JobRequest) -> JobHandle:
        self.submitted.append(request)
        if self.submit_error is not None:
            raise self.submit_error
        job_id = f"job-{len(self.submitted)}"
        return JobHandle(
            job_id=job_id,
            status_url=f"https://runner.test/v1/predictions/{job_id}",
            cancel_url=f"https://runner.test/v1/predictions/{job_id}/cancel",
            snapshot=self.snapshot,
        )

    async def poll(self, handle: JobHandle) -> JobPoll:
        self.polled.append(handle)
        if not self.polls:
            return JobPoll(status=JobStatus.PENDING)
        item = self.polls.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    async def cancel(self, handle: JobHandle) -> None:
        self.cancelled.append(handle.job_id)


class HangingRunner(ScriptedRunner):
    """Runner whose status check never returns."""

    async def poll(self, handle: JobHandle) -> JobPoll:
        self.polled.append(handle)
        await asyncio.Event().wait()
        raise AssertionError("unreachable")


@pytest.fixture
def fake_time() -> FakeTime:
    return FakeTime()


@pytest.fixture
def scripted_runner():
    """Factory fixture building ScriptedRunner instances."""
    return ScriptedRunner


@pytest.fixture
def hanging_runner():
    return HangingRunner

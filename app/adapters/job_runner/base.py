"""Job runner interfaces and the value types exchanged with a runner."""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping


class JobStatus(enum.Enum):
    """Runner-side state of a job as seen by a single status check."""

    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not JobStatus.PENDING


@dataclass(frozen=True)
class JobRequest:
    """Payload for exactly one job submission.

    Attributes:
        version: Model version the runner should execute.
        input: Model input; treated as opaque data.
    """

    version: str
    input: Mapping[str, Any]

    def __post_init__(self) -> None:
        # Freeze the input so the payload cannot change after construction.
        object.__setattr__(self, "input", MappingProxyType(dict(self.input)))

    def to_payload(self) -> dict[str, Any]:
        return {"version": self.version, "input": dict(self.input)}


@dataclass(frozen=True)
class JobPoll:
    """Result of one status check."""

    status: JobStatus
    output: tuple[str, ...] = ()
    error: str | None = None


@dataclass(frozen=True)
class JobHandle:
    """Reference to a submitted job.

    Attributes:
        job_id: Runner-assigned job id.
        status_url: URL polled for status.
        cancel_url: URL used to cancel the job, when the runner exposes one.
        snapshot: Status reported by the submission response itself.
    """

    job_id: str
    status_url: str
    cancel_url: str | None = None
    snapshot: JobPoll | None = field(default=None, compare=False)


class AbstractJobRunner(ABC):
    """Interface for external asynchronous job runners."""

    @abstractmethod
    async def submit(self, request: JobRequest) -> JobHandle:
        """Submit a job.

        Raises:
            JobSubmissionError: If the runner is unreachable or rejects the job.
        """
        ...

    @abstractmethod
    async def poll(self, handle: JobHandle) -> JobPoll:
        """Fetch the job status once. Safe to repeat while pending.

        Raises:
            JobRunnerUnavailableError: If the status cannot be fetched.
        """
        ...

    async def cancel(self, handle: JobHandle) -> None:
        """Ask the runner to stop the job. Runners without cancellation ignore it."""
        return None

    async def aclose(self) -> None:
        """Release client resources."""
        return None

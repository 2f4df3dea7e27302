"""Job runner adapter layer - abstracts over the external prediction service."""

from app.adapters.job_runner.base import (
    AbstractJobRunner,
    JobHandle,
    JobPoll,
    JobRequest,
    JobStatus,
)
from app.adapters.job_runner.factory import create_job_runner
from app.adapters.job_runner.replicate_client import ReplicateJobRunner

__all__ = [
    "AbstractJobRunner",
    "JobHandle",
    "JobPoll",
    "JobRequest",
    "JobStatus",
    "ReplicateJobRunner",
    "create_job_runner",
]

"""Tests for the Replicate job runner adapter using httpx.MockTransport."""

import json

import httpx
import pytest

from app.adapters.job_runner.base import JobHandle, JobRequest, JobStatus
from app.adapters.job_runner.factory import create_job_runner
from app.adapters.job_runner.replicate_client import ReplicateJobRunner, parse_prediction
from app.core.config import RunnerSettings
from app.core.errors import JobRunnerUnavailableError, JobSubmissionError, ValidationAppError
from app.services.job_orchestrator import FailureStage, JobFailed, JobOrchestrator

BASE_URL = "https://api.replicate.test/v1"
STATUS_URL = f"{BASE_URL}/predictions/abc123"
CANCEL_URL = f"{BASE_URL}/predictions/abc123/cancel"


def _prediction(status: str, **extra) -> dict:
    return {
        "id": "abc123",
        "status": status,
        "urls": {"get": STATUS_URL, "cancel": CANCEL_URL},
        **extra,
    }


def _runner(handler) -> tuple[ReplicateJobRunner, list[httpx.Request]]:
    seen: list[httpx.Request] = []

    def _record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    runner = ReplicateJobRunner(
        api_token="tok-123",
        base_url=BASE_URL,
        transport=httpx.MockTransport(_record),
    )
    return runner, seen


@pytest.fixture
def job_request() -> JobRequest:
    return JobRequest(
        version="model-v1",
        input={"image": "https://img.test/a.png", "style": "Clay"},
    )


class TestSubmit:
    @pytest.mark.asyncio
    async def test_posts_payload_with_token_auth(self, job_request) -> None:
        runner, seen = _runner(lambda request: httpx.Response(201, json=_prediction("starting")))

        handle = await runner.submit(job_request)

        assert handle == JobHandle(job_id="abc123", status_url=STATUS_URL, cancel_url=CANCEL_URL)
        assert handle.snapshot.status is JobStatus.PENDING
        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == f"{BASE_URL}/predictions"
        assert request.headers["Authorization"] == "Token tok-123"
        assert json.loads(request.content) == {
            "version": "model-v1",
            "input": {"image": "https://img.test/a.png", "style": "Clay"},
        }

    @pytest.mark.asyncio
    async def test_rejected_payload_raises_submission_error(self, job_request) -> None:
        runner, _ = _runner(lambda request: httpx.Response(422, json={"detail": "invalid input"}))

        with pytest.raises(JobSubmissionError) as exc_info:
            await runner.submit(job_request)

        assert exc_info.value.details == {"http_status": 422}
        assert "invalid input" not in exc_info.value.message

    @pytest.mark.asyncio
    async def test_unreachable_runner_raises_submission_error(self, job_request) -> None:
        def _fail(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        runner, _ = _runner(_fail)

        with pytest.raises(JobSubmissionError):
            await runner.submit(job_request)

    @pytest.mark.asyncio
    async def test_response_without_status_url_raises_submission_error(self, job_request) -> None:
        runner, _ = _runner(lambda request: httpx.Response(201, json={"id": "abc123"}))

        with pytest.raises(JobSubmissionError):
            await runner.submit(job_request)


class TestPoll:
    @pytest.mark.asyncio
    async def test_polls_status_url(self) -> None:
        runner, seen = _runner(
            lambda request: httpx.Response(200, json=_prediction("succeeded", output=["u1", "u2"]))
        )

        result = await runner.poll(JobHandle(job_id="abc123", status_url=STATUS_URL))

        assert result.status is JobStatus.SUCCEEDED
        assert result.output == ("u1", "u2")
        assert seen[0].method == "GET"
        assert str(seen[0].url) == STATUS_URL

    @pytest.mark.asyncio
    async def test_http_error_raises_runner_unavailable(self) -> None:
        runner, _ = _runner(lambda request: httpx.Response(503, text="unavailable"))

        with pytest.raises(JobRunnerUnavailableError):
            await runner.poll(JobHandle(job_id="abc123", status_url=STATUS_URL))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [["not", "an", "object"], "pending", None, 42])
    async def test_non_object_body_raises_runner_unavailable(self, body) -> None:
        runner, _ = _runner(lambda request: httpx.Response(200, content=json.dumps(body)))

        with pytest.raises(JobRunnerUnavailableError):
            await runner.poll(JobHandle(job_id="abc123", status_url=STATUS_URL))

    @pytest.mark.asyncio
    async def test_non_object_body_ends_run_as_execution_failure(self, job_request) -> None:
        def _handler(request: httpx.Request) -> httpx.Response:
            if request.method == "POST":
                return httpx.Response(201, json=_prediction("starting"))
            return httpx.Response(200, json=["not", "an", "object"])

        runner, _ = _runner(_handler)
        orchestrator = JobOrchestrator(runner, poll_interval_seconds=0.01, timeout_seconds=5.0)

        outcome = await orchestrator.run(job_request)

        assert isinstance(outcome, JobFailed)
        assert outcome.stage is FailureStage.EXECUTION
        assert outcome.job_id == "abc123"


class TestCancel:
    @pytest.mark.asyncio
    async def test_posts_to_cancel_url(self) -> None:
        runner, seen = _runner(lambda request: httpx.Response(200, json=_prediction("canceled")))

        await runner.cancel(JobHandle(job_id="abc123", status_url=STATUS_URL, cancel_url=CANCEL_URL))

        assert [(r.method, str(r.url)) for r in seen] == [("POST", CANCEL_URL)]

    @pytest.mark.asyncio
    async def test_without_cancel_url_is_a_no_op(self) -> None:
        runner, seen = _runner(lambda request: httpx.Response(200))

        await runner.cancel(JobHandle(job_id="abc123", status_url=STATUS_URL))

        assert seen == []


@pytest.mark.parametrize(
    ("body", "status", "output", "error"),
    [
        ({"status": "starting"}, JobStatus.PENDING, (), None),
        ({"status": "processing", "output": None}, JobStatus.PENDING, (), None),
        ({"status": "succeeded", "output": "https://out/1.png"}, JobStatus.SUCCEEDED, ("https://out/1.png",), None),
        ({"status": "failed", "error": "model error"}, JobStatus.FAILED, (), "model error"),
        ({"status": "canceled"}, JobStatus.FAILED, (), "Job was canceled"),
        ({"status": "queued-somewhere"}, JobStatus.PENDING, (), None),
    ],
)
def test_parse_prediction(body: dict, status: JobStatus, output: tuple, error) -> None:
    result = parse_prediction(body)

    assert result.status is status
    assert result.output == output
    assert result.error == error


def test_factory_requires_api_token() -> None:
    with pytest.raises(ValidationAppError) as exc_info:
        create_job_runner(RunnerSettings(api_token=None))

    assert exc_info.value.code == "runner_missing_api_token"

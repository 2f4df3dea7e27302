from __future__ import annotations

from fastapi.testclient import TestClient

from app.main import app


client = TestClient(app)


def test_preserves_incoming_request_id_header():
    incoming_id = "test-request-id-123"
    resp = client.get("/health", headers={"X-Request-ID": incoming_id})

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID") == incoming_id


def test_generates_request_id_and_duration_when_missing():
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID")
    assert float(resp.headers["X-Request-Duration-ms"]) >= 0


def test_health_reports_rate_limit_state():
    resp = client.get("/health")

    # No Redis URL is configured in the test environment.
    assert resp.json() == {"status": "ok", "rate_limit_enabled": False}


def test_openapi_documents_api_key_and_quota_headers():
    schema = client.get("/openapi.json").json()

    assert "ApiKeyAuth" in schema["components"]["securitySchemes"]
    restore = schema["paths"]["/v1/restore"]["post"]
    assert "X-RateLimit-Remaining" in restore["responses"]["200"]["headers"]
    assert "429" in restore["responses"]
    assert schema["paths"]["/health"]["get"]["security"] == []

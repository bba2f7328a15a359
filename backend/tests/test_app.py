"""
Tests for application wiring: health, metrics and error mapping.
"""

import pytest

from jobtracker.errors import DuplicateEmail, TerminalStateViolation, UpstreamServiceError


class TestHealthAndMetrics:
    """Test /health and /metrics."""

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    @pytest.mark.asyncio
    async def test_metrics_exposes_domain_counters(self, auth_client):
        await auth_client.post("/api/jobs", json={"title": "SWE", "company": "Acme"})

        response = await auth_client.get("/metrics")
        assert response.status_code == 200
        text = response.text
        assert 'job_status_transitions_total{outcome="accepted"}' in text
        assert 'auth_events_total{event="login",outcome="success"}' in text
        assert 'endpoint="/api/jobs"' in text


class TestErrorMapping:
    """Test AppError payloads."""

    def test_plain_error(self):
        assert DuplicateEmail().to_dict() == {"detail": "Email already registered"}
        assert DuplicateEmail().status_code == 400

    def test_terminal_state_status(self):
        assert TerminalStateViolation("nope").status_code == 400

    def test_upstream_error_is_retryable(self):
        error = UpstreamServiceError("down", status_code=503)
        assert error.status_code == 503
        assert error.to_dict() == {"detail": "down", "retryable": True}

    @pytest.mark.asyncio
    async def test_request_validation_shape(self, client):
        response = await client.post("/api/auth/register", json={"email": "a@example.com"})
        assert response.status_code == 400
        body = response.json()
        assert body["detail"] == "Validation failed"
        fields = {error["field"] for error in body["errors"]}
        assert {"password", "display_name"} <= fields

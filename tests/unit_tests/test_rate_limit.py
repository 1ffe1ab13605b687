"""Tests for rate limiting behaviour."""

import pytest
from fastapi.testclient import TestClient

from court_booking.main import app
from tests.mocks.client import PASSWORD


class TestRateLimiting:
    """Verify that rate limiting kicks in for the credential endpoints."""

    @pytest.fixture()
    def limited_client(self, _test_env):
        """
        TestClient with rate limiting **enabled** (unlike the default
        `client` fixture which disables it for convenience).
        """
        from court_booking.rate_limit import limiter

        limiter.enabled = True
        # Reset in-memory state so previous tests don't pollute counts
        limiter.reset()

        with TestClient(app, raise_server_exceptions=False) as tc:
            yield tc

        limiter.enabled = False

    def test_login_rate_limit(self, limited_client):
        """POST /api/auth/login is limited to 10 requests/minute."""
        for i in range(10):
            resp = limited_client.post(
                "/api/auth/login",
                json={"email": "nobody@example.com", "password": PASSWORD},
            )
            # 401 (unknown user) is fine – we just need it not to be 429 yet
            assert resp.status_code == 401, f"Request {i + 1} should not be rate-limited"

        resp = limited_client.post(
            "/api/auth/login",
            json={"email": "nobody@example.com", "password": PASSWORD},
        )
        assert resp.status_code == 429
        data = resp.json()
        assert "Rate limit exceeded" in data["detail"]
        assert data["error"] == "rate_limited"

    def test_register_rate_limit(self, limited_client):
        """POST /api/auth/register is limited to 10 requests/minute."""
        for i in range(10):
            resp = limited_client.post(
                "/api/auth/register",
                json={"name": f"Player {chr(65 + i)}", "email": f"p{i}@example.com", "password": PASSWORD},
            )
            assert resp.status_code == 201, f"Request {i + 1} should succeed"

        resp = limited_client.post(
            "/api/auth/register",
            json={"name": "Player X", "email": "px@example.com", "password": PASSWORD},
        )
        assert resp.status_code == 429

    def test_general_endpoint_not_limited_at_low_volume(self, limited_client):
        """GET /api/courts at low volume should not be rate-limited."""
        for _ in range(10):
            resp = limited_client.get("/api/courts")
            assert resp.status_code == 200

"""Tests for FastAPI application wiring and exception handlers.

Test routes are registered under /api/ so the entry proxy passes them
straight through.
"""

from unittest.mock import patch

import pytest
from httpx import ASGITransport, AsyncClient

from fundroom.core.errors import (
    ForbiddenError,
    InternalError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from fundroom.core.rate_limiting import RateLimitExceeded, RateLimitResult
from fundroom.main import create_app


@pytest.fixture
def app():
    """Create test application instance."""
    return create_app()


@pytest.fixture
async def client(app):
    """Create async HTTP client for testing."""
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


class TestExceptionHandlers:
    """Tests for error envelope rendering."""

    @pytest.mark.parametrize(
        ("exc", "status", "code"),
        [
            (ValidationError("Invalid input"), 400, "VALIDATION_ERROR"),
            (UnauthorizedError(), 401, "UNAUTHORIZED"),
            (ForbiddenError(), 403, "FORBIDDEN"),
            (NotFoundError("Dataroom", "7"), 404, "NOT_FOUND"),
            (InternalError("Failed to create login link"), 500, "INTERNAL_ERROR"),
        ],
    )
    async def test_api_errors_use_envelope(self, app, client, exc, status, code):
        @app.get("/api/test/raise")
        async def raise_error():
            raise exc

        response = await client.get("/api/test/raise")
        assert response.status_code == status
        body = response.json()
        assert body["error"]["code"] == code
        assert "data" not in body

    async def test_rate_limit_exceeded_is_flat_429(self, app, client):
        @app.get("/api/test/limited")
        async def limited():
            raise RateLimitExceeded(
                RateLimitResult(allowed=False, limit=5, remaining=0, reset_seconds=30)
            )

        response = await client.get("/api/test/limited")
        assert response.status_code == 429
        assert response.json() == {
            "error": "Too many requests",
            "message": "Rate limit exceeded. Try again in 30 seconds.",
            "retryAfter": 30,
        }
        assert response.headers["retry-after"] == "30"
        assert response.headers["x-ratelimit-limit"] == "5"

    async def test_unhandled_exception_is_generic_500(self, app, client, reporter):
        """Internal details never reach the client; the monitor gets metadata."""

        @app.get("/api/test/crash")
        async def crash():
            raise RuntimeError("password=hunter2 at db-01")

        response = await client.get("/api/test/crash")
        assert response.status_code == 500
        assert response.json()["error"] == {
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred",
            "details": None,
        }
        assert "hunter2" not in response.text
        exc, context = reporter.errors[0]
        assert isinstance(exc, RuntimeError)
        assert context["path"] == "/api/test/crash"
        assert context["method"] == "GET"


class TestTenantRouting:
    """Tests for tenant-domain rewrites through the full application."""

    async def test_tenant_view(self, client):
        response = await client.get("/q3-update", headers={"host": "acme.local"})
        assert response.status_code == 200
        assert response.json() == {"data": {"domain": "acme.local", "slug": "q3-update"}}
        assert response.headers["x-robots-tag"] == "noindex"

    async def test_tenant_scanner_path(self, client):
        response = await client.get("/phpmyadmin", headers={"host": "acme.local"})
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    async def test_unknown_api_route_is_404(self, client):
        response = await client.get("/api/nonexistent")
        assert response.status_code == 404


class TestHealth:
    """Tests for the health check."""

    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


class TestCORSMiddleware:
    """Tests for CORS middleware configuration."""

    async def test_cors_allows_configured_origin(self, client):
        """CORS should allow requests from configured origins."""
        response = await client.options(
            "/health",
            headers={
                "Origin": "http://localhost:3000",
                "Access-Control-Request-Method": "GET",
            },
        )
        assert response.status_code == 200
        assert (
            response.headers.get("access-control-allow-origin")
            == "http://localhost:3000"
        )

    async def test_cors_denies_unconfigured_origin(self):
        """CORS should deny requests from unconfigured origins."""
        with patch("fundroom.main.settings.allowed_origins", ["http://allowed-origin.com"]):
            test_app = create_app()
            transport = ASGITransport(app=test_app)
            async with AsyncClient(transport=transport, base_url="http://test") as ac:
                response = await ac.options(
                    "/health",
                    headers={
                        "Origin": "http://malicious-site.com",
                        "Access-Control-Request-Method": "GET",
                    },
                )
                allowed_origin = response.headers.get("access-control-allow-origin")
                assert allowed_origin != "http://malicious-site.com"


class TestSecurityHeadersMiddleware:
    """Tests for security headers middleware."""

    async def test_security_headers(self, client):
        response = await client.get("/health")
        assert response.headers["x-frame-options"] == "DENY"
        assert response.headers["x-content-type-options"] == "nosniff"
        assert "frame-ancestors 'none'" in response.headers["content-security-policy"]
        assert "strict-transport-security" not in response.headers

    async def test_api_responses_not_cached(self, client):
        response = await client.get("/api/nonexistent")
        assert response.headers["cache-control"] == "no-store, max-age=0"

    async def test_referrer_policy_default(self, client):
        response = await client.get("/health")
        assert response.headers["referrer-policy"] == "strict-origin-when-cross-origin"

    async def test_proxy_rejections_carry_headers(self, client):
        """Security headers wrap the entry proxy's own responses."""
        response = await client.get("/health", headers={"x-forwarded-for": "bogus"})
        assert response.status_code == 400
        assert response.headers["x-frame-options"] == "DENY"

    async def test_hsts_with_secure_cookies(self, client, test_settings, monkeypatch):
        monkeypatch.setattr(test_settings, "app_url", "https://app.fundroom.ai")
        response = await client.get("/health")
        assert "max-age=31536000" in response.headers["strict-transport-security"]

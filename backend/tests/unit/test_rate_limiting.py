"""Tests for fixed-window rate limiting.

Security: Tests for abuse prevention on auth and API endpoints, including
the audit trail written for rejected requests.
"""

import time
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import select
from starlette.requests import Request
from starlette.responses import Response

from fundroom.core import database
from fundroom.core.rate_limiting import (
    MemoryRateLimitStore,
    RateLimiter,
    RateLimitExceeded,
    RateLimitResult,
    RateLimitViolation,
    WindowState,
    api_rate_limiter,
    auth_rate_limiter,
    record_rate_limit_violation,
    signature_rate_limiter,
    strict_rate_limiter,
)
from fundroom.models import AuditLog


def _request(
    *,
    ip: str | None = "203.0.113.9",
    path: str = "/api/auth/admin-login",
    user_agent: str = "pytest-agent",
) -> Request:
    headers = [(b"user-agent", user_agent.encode())]
    if ip is not None:
        headers.append((b"x-forwarded-for", ip.encode()))
    return Request(
        {
            "type": "http",
            "method": "POST",
            "path": path,
            "headers": headers,
            "query_string": b"",
        }
    )


def _limiter(max_requests: int = 3, **kwargs) -> RateLimiter:
    kwargs.setdefault("audit", AsyncMock())
    return RateLimiter(
        window_seconds=60,
        max_requests=max_requests,
        key_prefix="test",
        **kwargs,
    )


class FixedStore:
    """Store that reports a preset window state."""

    def __init__(self, count: int, reset_in: float) -> None:
        self.count = count
        self.reset_in = reset_in

    async def increment(self, key: str, window_seconds: int) -> WindowState:
        return WindowState(count=self.count, reset_at=time.time() + self.reset_in)

    async def reset(self) -> None:
        self.count = 0


# =============================================================================
# Admission
# =============================================================================


class TestAdmission:
    """Tests for counting and admission."""

    async def test_remaining_counts_down_then_rejects(self):
        """Three requests pass with 2/1/0 remaining, the fourth is rejected."""
        limiter = _limiter()
        results = [await limiter.hit(_request()) for _ in range(4)]

        assert [r.remaining for r in results[:3]] == [2, 1, 0]
        assert all(r.allowed for r in results[:3])
        assert results[3].allowed is False
        assert results[3].remaining == 0

    async def test_separate_buckets_per_ip(self):
        limiter = _limiter(max_requests=1)
        assert (await limiter.hit(_request(ip="203.0.113.1"))).allowed
        assert (await limiter.hit(_request(ip="203.0.113.2"))).allowed
        assert not (await limiter.hit(_request(ip="203.0.113.1"))).allowed

    async def test_separate_buckets_per_endpoint(self):
        limiter = _limiter(max_requests=1)
        assert (await limiter.hit(_request(path="/api/a"))).allowed
        assert (await limiter.hit(_request(path="/api/b"))).allowed

    async def test_separate_buckets_per_prefix(self):
        """Two limiters on the same endpoint do not share counters."""
        first = _limiter(max_requests=1)
        second = RateLimiter(
            window_seconds=60, max_requests=1, key_prefix="other", audit=AsyncMock()
        )
        assert (await first.hit(_request())).allowed
        assert (await second.hit(_request())).allowed

    async def test_missing_ip_shares_unknown_bucket(self):
        limiter = _limiter(max_requests=1)
        assert (await limiter.hit(_request(ip=None))).allowed
        assert not (await limiter.hit(_request(ip=None))).allowed

    async def test_key_format(self):
        assert _limiter().key_for("1.2.3.4", "/api/x") == "test:1.2.3.4:/api/x"

    async def test_reset_seconds_from_window_end(self):
        limiter = _limiter(store=FixedStore(count=1, reset_in=42.2))
        result = await limiter.hit(_request())
        assert result.reset_seconds == 43

    async def test_new_window_after_expiry(self):
        """An elapsed window starts counting again at one."""
        store = FixedStore(count=4, reset_in=-1)
        limiter = _limiter(store=store)
        assert not (await limiter.hit(_request())).allowed
        store.count = 1
        result = await limiter.hit(_request())
        assert result.allowed
        assert result.reset_seconds == 0

    async def test_disabled_never_rejects(self, test_settings, monkeypatch):
        monkeypatch.setattr(test_settings, "rate_limit_enabled", False)
        limiter = _limiter(max_requests=1)
        for _ in range(5):
            result = await limiter.hit(_request())
            assert result.allowed
            assert result.remaining == 1


class TestMemoryStore:
    """Tests for the default counter backend."""

    async def test_increments_within_window(self):
        store = MemoryRateLimitStore()
        first = await store.increment("k", 60)
        second = await store.increment("k", 60)
        assert (first.count, second.count) == (1, 2)
        assert second.reset_at > time.time()

    async def test_reset_clears_counters(self):
        store = MemoryRateLimitStore()
        await store.increment("k", 60)
        await store.reset()
        assert (await store.increment("k", 60)).count == 1


# =============================================================================
# Dependency behaviour
# =============================================================================


class TestDependency:
    """Tests for the FastAPI dependency call."""

    async def test_sets_headers_on_admission(self):
        limiter = _limiter()
        response = Response()
        await limiter(_request(), response)
        assert response.headers["X-RateLimit-Limit"] == "3"
        assert response.headers["X-RateLimit-Remaining"] == "2"
        assert int(response.headers["X-RateLimit-Reset"]) <= 60

    async def test_raises_when_exceeded(self):
        limiter = _limiter(max_requests=1)
        await limiter(_request(), Response())
        with pytest.raises(RateLimitExceeded) as exc_info:
            await limiter(_request(), Response())

        exc = exc_info.value
        assert exc.retry_after >= 1
        assert exc.body()["error"] == "Too many requests"
        assert exc.body()["retryAfter"] == exc.retry_after
        assert f"Try again in {exc.retry_after} seconds" in exc.body()["message"]
        headers = exc.response_headers()
        assert headers["Retry-After"] == str(exc.retry_after)
        assert headers["X-RateLimit-Remaining"] == "0"

    def test_retry_after_is_at_least_one(self):
        exc = RateLimitExceeded(
            RateLimitResult(allowed=False, limit=1, remaining=0, reset_seconds=0)
        )
        assert exc.retry_after == 1


# =============================================================================
# Violation handling
# =============================================================================


class TestViolations:
    """Tests for callbacks and audit writes on rejection."""

    async def test_callback_receives_ip_and_endpoint(self):
        callback = MagicMock()
        limiter = _limiter(max_requests=1, on_limit_reached=callback)
        await limiter.hit(_request())
        callback.assert_not_called()
        await limiter.hit(_request())
        callback.assert_called_once_with("203.0.113.9", "/api/auth/admin-login")

    async def test_audit_writer_receives_violation(self):
        audit = AsyncMock()
        limiter = _limiter(max_requests=1, audit=audit)
        await limiter.hit(_request())
        await limiter.hit(_request())

        audit.assert_awaited_once()
        violation: RateLimitViolation = audit.await_args.args[0]
        assert violation.ip == "203.0.113.9"
        assert violation.endpoint == "/api/auth/admin-login"
        assert violation.user_agent == "pytest-agent"
        assert violation.count == 2
        assert violation.limit == 1

    async def test_audit_failure_does_not_change_outcome(self):
        """A failing audit write is logged; the request is still rejected."""
        audit = AsyncMock(side_effect=RuntimeError("db down"))
        limiter = _limiter(max_requests=1, audit=audit)
        await limiter.hit(_request())
        result = await limiter.hit(_request())
        assert result.allowed is False
        audit.assert_awaited_once()

    async def test_callback_failure_does_not_change_outcome(self):
        """A raising callback is logged; the audit row and rejection stand."""
        audit = AsyncMock()
        callback = MagicMock(side_effect=RuntimeError("boom"))
        limiter = _limiter(max_requests=1, audit=audit, on_limit_reached=callback)
        await limiter.hit(_request())
        result = await limiter.hit(_request())
        assert result.allowed is False
        callback.assert_called_once()
        audit.assert_awaited_once()

    async def test_callback_failure_still_raises_429(self):
        callback = MagicMock(side_effect=RuntimeError("boom"))
        limiter = _limiter(max_requests=1, on_limit_reached=callback)
        await limiter(_request(), Response())
        with pytest.raises(RateLimitExceeded):
            await limiter(_request(), Response())

    async def test_record_violation_writes_audit_row(self, session_factory, monkeypatch):
        monkeypatch.setattr(database, "async_session_factory", session_factory)
        await record_rate_limit_violation(
            RateLimitViolation(
                key_prefix="auth",
                ip="203.0.113.9",
                endpoint="/api/auth/admin-login",
                user_agent="pytest-agent",
                limit=10,
                window_seconds=3600,
                count=11,
            )
        )

        async with session_factory() as session:
            rows = (await session.execute(select(AuditLog))).scalars().all()
        assert len(rows) == 1
        row = rows[0]
        assert row.event_type == "RATE_LIMIT_EXCEEDED"
        assert row.severity == "WARNING"
        assert row.ip_address == "203.0.113.9"
        assert row.resource == "/api/auth/admin-login"
        assert row.details["limit"] == 10


class TestPresets:
    """Tests for the shared limiter presets."""

    @pytest.mark.parametrize(
        ("limiter", "window", "max_requests"),
        [
            (signature_rate_limiter, 900, 5),
            (auth_rate_limiter, 3600, 10),
            (api_rate_limiter, 60, 100),
            (strict_rate_limiter, 3600, 3),
        ],
    )
    def test_preset_values(self, limiter, window, max_requests):
        assert limiter.window_seconds == window
        assert limiter.max_requests == max_requests

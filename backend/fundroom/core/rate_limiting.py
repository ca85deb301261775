"""Fixed-window rate limiting for sensitive endpoints.

Security: Admission control in front of auth, signature and generic API
endpoints. A best-effort abuse deterrent, not a quota of record: counters
live in process memory, so the effective limit across N instances is
max_requests * N.

Counters are held by an injectable RateLimitStore. The default store wraps
the ``limits`` in-memory storage, which increments under a per-key lock, so
concurrent requests on one key never both observe the same count.

Usage in routers:
    from fundroom.core.rate_limiting import RateLimitResult, auth_rate_limiter

    @router.post("/admin-login")
    async def admin_login(
        body: AdminLoginRequest,
        _limit: RateLimitResult = Depends(auth_rate_limiter),
    ):
        ...
"""

import logging
import math
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol

import structlog
from fastapi import Request, Response
from limits.storage import storage_from_string

from fundroom.core import database
from fundroom.core.config import settings
from fundroom.core.enums import AuditEventType, AuditSeverity
from fundroom.repositories.audit_log_repository import AuditLogRepository
from fundroom.routing.host import get_client_ip

logger = logging.getLogger(__name__)
audit_logger = structlog.get_logger("fundroom.rate_limiting")

# Bucket shared by every request that carries no client IP
UNKNOWN_CLIENT = "unknown"


@dataclass(frozen=True)
class WindowState:
    """Counter state after an increment.

    Attributes:
        count: Requests seen in the current window, including this one.
        reset_at: Epoch seconds at which the window closes.
    """

    count: int
    reset_at: float


class RateLimitStore(Protocol):
    """Counter backend. Swap for a shared store in multi-instance setups."""

    async def increment(self, key: str, window_seconds: int) -> WindowState: ...

    async def reset(self) -> None: ...


class MemoryRateLimitStore:
    """Process-local store backed by the ``limits`` memory storage.

    The first increment on a key opens a fixed window of ``window_seconds``;
    once it has elapsed the next increment starts a new window at 1.
    """

    def __init__(self, uri: str = "memory://") -> None:
        self._storage = storage_from_string(uri)

    async def increment(self, key: str, window_seconds: int) -> WindowState:
        count = self._storage.incr(key, window_seconds)
        return WindowState(count=count, reset_at=self._storage.get_expiry(key))

    async def reset(self) -> None:
        self._storage.reset()


@dataclass(frozen=True)
class RateLimitViolation:
    """Context handed to the audit writer when a request is rejected."""

    key_prefix: str
    ip: str
    endpoint: str
    user_agent: str | None
    limit: int
    window_seconds: int
    count: int


AuditWriter = Callable[[RateLimitViolation], Awaitable[None]]


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of one admission check.

    Attributes:
        allowed: Whether the request is admitted.
        limit: Configured max requests per window.
        remaining: max - count, floored at 0.
        reset_seconds: Whole seconds until the window ends.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_seconds: int

    def headers(self) -> dict[str, str]:
        """X-RateLimit-* headers for this result."""
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_seconds),
        }

    def apply(self, response: Response) -> Response:
        """Copy the rate-limit headers onto a response built by the caller."""
        response.headers.update(self.headers())
        return response


class RateLimitExceeded(Exception):
    """Raised by the limiter dependency when a request is rejected.

    Rendered as 429 by the handler registered in create_app().
    """

    def __init__(self, result: RateLimitResult) -> None:
        self.result = result
        super().__init__("Rate limit exceeded")

    @property
    def retry_after(self) -> int:
        return max(self.result.reset_seconds, 1)

    def body(self) -> dict[str, str | int]:
        return {
            "error": "Too many requests",
            "message": (
                f"Rate limit exceeded. Try again in {self.retry_after} seconds."
            ),
            "retryAfter": self.retry_after,
        }

    def response_headers(self) -> dict[str, str]:
        headers = self.result.headers()
        headers["Retry-After"] = str(self.retry_after)
        return headers


async def record_rate_limit_violation(violation: RateLimitViolation) -> None:
    """Write a RATE_LIMIT_EXCEEDED audit row in its own transaction.

    Args:
        violation: Rejected request context.
    """
    async with database.async_session_factory() as db:
        await AuditLogRepository.create(
            db,
            event_type=AuditEventType.RATE_LIMIT_EXCEEDED,
            severity=AuditSeverity.WARNING,
            ip_address=violation.ip,
            user_agent=violation.user_agent,
            resource=violation.endpoint,
            details={
                "keyPrefix": violation.key_prefix,
                "limit": violation.limit,
                "windowSeconds": violation.window_seconds,
                "count": violation.count,
            },
        )
        await db.commit()


class RateLimiter:
    """Fixed-window limiter keyed by prefix, client IP and endpoint path.

    Instances are FastAPI dependencies: on admission they set the
    X-RateLimit-* headers on the response, on rejection they raise
    RateLimitExceeded.

    Args:
        window_seconds: Window length.
        max_requests: Requests admitted per window.
        key_prefix: Namespace for this limiter's counters.
        on_limit_reached: Optional callback invoked with (ip, endpoint).
        store: Counter backend. Defaults to the shared memory store.
        audit: Audit writer. Defaults to record_rate_limit_violation.
    """

    def __init__(
        self,
        *,
        window_seconds: int,
        max_requests: int,
        key_prefix: str,
        on_limit_reached: Callable[[str, str], None] | None = None,
        store: RateLimitStore | None = None,
        audit: AuditWriter | None = None,
    ) -> None:
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self.key_prefix = key_prefix
        self.on_limit_reached = on_limit_reached
        self._store = store
        self._audit = audit

    @property
    def store(self) -> RateLimitStore:
        return self._store if self._store is not None else default_store

    def key_for(self, ip: str, endpoint: str) -> str:
        return f"{self.key_prefix}:{ip}:{endpoint}"

    async def hit(self, request: Request) -> RateLimitResult:
        """Count one request and decide admission.

        Args:
            request: Incoming request.

        Returns:
            RateLimitResult. Never raises for rejected requests.
        """
        if not settings.rate_limit_enabled:
            return RateLimitResult(
                allowed=True,
                limit=self.max_requests,
                remaining=self.max_requests,
                reset_seconds=self.window_seconds,
            )

        ip = get_client_ip(request.headers) or UNKNOWN_CLIENT
        endpoint = request.url.path
        state = await self.store.increment(
            self.key_for(ip, endpoint), self.window_seconds
        )
        reset_seconds = max(0, math.ceil(state.reset_at - time.time()))
        result = RateLimitResult(
            allowed=state.count <= self.max_requests,
            limit=self.max_requests,
            remaining=max(0, self.max_requests - state.count),
            reset_seconds=min(reset_seconds, self.window_seconds),
        )

        if not result.allowed:
            await self._audit_violation(
                RateLimitViolation(
                    key_prefix=self.key_prefix,
                    ip=ip,
                    endpoint=endpoint,
                    user_agent=request.headers.get("user-agent"),
                    limit=self.max_requests,
                    window_seconds=self.window_seconds,
                    count=state.count,
                )
            )
            self._notify_limit_reached(ip, endpoint)
        return result

    async def _audit_violation(self, violation: RateLimitViolation) -> None:
        audit_logger.warning(
            "rate_limit.exceeded",
            key_prefix=violation.key_prefix,
            ip=violation.ip,
            endpoint=violation.endpoint,
            count=violation.count,
        )
        writer = self._audit or record_rate_limit_violation
        try:
            await writer(violation)
        except Exception:
            # Audit is best-effort: the 429 stands regardless
            logger.warning("Failed to write rate limit audit entry", exc_info=True)

    def _notify_limit_reached(self, ip: str, endpoint: str) -> None:
        if self.on_limit_reached is None:
            return
        try:
            self.on_limit_reached(ip, endpoint)
        except Exception:
            logger.warning("on_limit_reached callback failed", exc_info=True)

    async def __call__(self, request: Request, response: Response) -> RateLimitResult:
        result = await self.hit(request)
        if not result.allowed:
            raise RateLimitExceeded(result)
        if settings.rate_limit_enabled:
            result.apply(response)
        return result


default_store: RateLimitStore = MemoryRateLimitStore()

signature_rate_limiter = RateLimiter(
    window_seconds=15 * 60,
    max_requests=5,
    key_prefix="signature",
)

auth_rate_limiter = RateLimiter(
    window_seconds=60 * 60,
    max_requests=10,
    key_prefix="auth",
)

api_rate_limiter = RateLimiter(
    window_seconds=60,
    max_requests=100,
    key_prefix="api",
)

strict_rate_limiter = RateLimiter(
    window_seconds=60 * 60,
    max_requests=3,
    key_prefix="strict",
)

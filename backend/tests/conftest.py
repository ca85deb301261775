import os
import uuid
from collections.abc import AsyncGenerator
from datetime import UTC, datetime
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from fundroom.core import database, rate_limiting
from fundroom.core.config import settings
from fundroom.core.enums import LoginPortal, MembershipStatus, Role, TeamRole
from fundroom.core.monitoring import set_error_reporter
from fundroom.core.rate_limiting import MemoryRateLimitStore
from fundroom.core.session import SessionClaims, create_session_token
from fundroom.models import Base, Team, User, UserTeam

# In-memory SQLite by default; point at a disposable Postgres database with
# TEST_DATABASE_URL to run the same suite against the production dialect.
TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite://")

# Security: This is a test-only secret. Production uses a real secret from env.
TEST_AUTH_SECRET = "test-secret-key-that-is-at-least-32-characters-long"  # nosec B105  # gitleaks:allow

# Static allow-listed administrator
TEST_ADMIN_EMAIL = "admin@example.com"

TEST_USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")


def create_test_session_token(
    *,
    user_id: uuid.UUID | str = TEST_USER_ID,
    email: str = "investor@example.com",
    role: Role = Role.LP,
    login_portal: LoginPortal = LoginPortal.VISITOR,
    created_at: datetime | None = None,
    now: datetime | None = None,
) -> str:
    """Sign a session token with the test secret.

    Args:
        user_id: Subject and ``id`` claim.
        email: E-mail claim.
        role: Portal role.
        login_portal: Issuing portal.
        created_at: Account creation time (welcome gate), omitted if None.
        now: Issue time. Defaults to the current time.

    Returns:
        Encoded session token.
    """
    claims = SessionClaims(
        id=str(user_id),
        email=email,
        role=role,
        login_portal=login_portal,
        created_at=created_at,
    )
    return create_session_token(claims, now=now or datetime.now(UTC))


class RecordingReporter:
    """Error reporter that keeps every report for assertions."""

    def __init__(self) -> None:
        self.errors: list[tuple[BaseException, dict[str, Any]]] = []
        self.infos: list[tuple[str, dict[str, Any]]] = []

    def report_error(self, exc: BaseException, **context: Any) -> None:
        self.errors.append((exc, context))

    def report_info(self, message: str, **context: Any) -> None:
        self.infos.append((message, context))


@pytest.fixture(autouse=True)
def test_settings(monkeypatch: pytest.MonkeyPatch):
    """Deterministic settings for every test.

    Development environment, no canonical URL, test secret, one static
    administrator, rate limiting on.
    """
    monkeypatch.setattr(settings, "environment", "development")
    monkeypatch.setattr(settings, "app_url", "")
    monkeypatch.setattr(settings, "verification_email_base_url", "")
    monkeypatch.setattr(settings, "platform_domain", "fundroom.ai")
    monkeypatch.setattr(settings, "infrastructure_host_suffixes", [])
    monkeypatch.setattr(settings, "webhook_hosts", [])
    monkeypatch.setattr(settings, "auth_secret", SecretStr(TEST_AUTH_SECRET))
    monkeypatch.setattr(settings, "auth_cookie_samesite", "lax")
    monkeypatch.setattr(settings, "admin_emails", TEST_ADMIN_EMAIL)
    monkeypatch.setattr(settings, "rate_limit_enabled", True)
    return settings


@pytest.fixture(autouse=True)
def fresh_rate_limit_store(monkeypatch: pytest.MonkeyPatch) -> MemoryRateLimitStore:
    """Empty rate-limit counters for every test."""
    store = MemoryRateLimitStore()
    monkeypatch.setattr(rate_limiting, "default_store", store)
    return store


@pytest.fixture
def reporter():
    """Install a RecordingReporter, restore the previous one afterwards."""
    recording = RecordingReporter()
    previous = set_error_reporter(recording)
    yield recording
    set_error_reporter(previous)


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create test database engine with all tables."""
    if TEST_DATABASE_URL.startswith("sqlite"):
        engine = create_async_engine(
            TEST_DATABASE_URL,
            echo=False,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def team_admin(db_session: AsyncSession) -> User:
    """User who is an administrator through an ACTIVE team OWNER role."""
    user = User(email="owner@fund.example", role=Role.GP.value)
    team = Team(name="Example Fund")
    db_session.add_all([user, team])
    await db_session.flush()
    db_session.add(
        UserTeam(
            user_id=user.id,
            team_id=team.id,
            role=TeamRole.OWNER.value,
            status=MembershipStatus.ACTIVE.value,
        )
    )
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture
async def client(
    session_factory, monkeypatch: pytest.MonkeyPatch
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for the full application.

    Sets up:
    - Test database connection via dependency override
    - Audit writes routed to the test database
    - httpx.AsyncClient with ASGI transport, no session cookie
    """
    from fundroom.core.database import get_db
    from fundroom.main import app

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    monkeypatch.setattr(database, "async_session_factory", session_factory)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()

"""Shared dependencies for API endpoints."""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from fundroom.core.database import get_db
from fundroom.core.errors import UnauthorizedError
from fundroom.core.rate_limiting import (
    RateLimitResult,
    api_rate_limiter,
    auth_rate_limiter,
)
from fundroom.core.session import SessionClaims, get_session


def get_optional_session(request: Request) -> SessionClaims | None:
    """Decoded session cookie, or None."""
    return get_session(request)


def require_session(request: Request) -> SessionClaims:
    """Decoded session cookie.

    Raises:
        UnauthorizedError: If the cookie is missing or invalid. The message
            never says which.
    """
    claims = get_session(request)
    if claims is None:
        raise UnauthorizedError()
    return claims


DbSession = Annotated[AsyncSession, Depends(get_db)]
OptionalSession = Annotated[SessionClaims | None, Depends(get_optional_session)]
CurrentSession = Annotated[SessionClaims, Depends(require_session)]
AuthRateLimit = Annotated[RateLimitResult, Depends(auth_rate_limiter)]
ApiRateLimit = Annotated[RateLimitResult, Depends(api_rate_limiter)]

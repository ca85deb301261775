"""Signed session tokens carried in the session cookie.

Pipeline:
- SessionClaims: typed claim set, validated on every decode
- create_session_token / decode_session_token: HS256 JWT via PyJWT
- set_session_cookie / clear_session_cookie / session_cookie_header:
  cookie attributes shared by every issuance path
- needs_renewal: 24-hour silent re-issue check

Issuance and decoding read the same cookie name from settings; it never
depends on whether the request arrived over TLS.
"""

import logging
from datetime import UTC, datetime

import jwt
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from starlette.requests import HTTPConnection
from starlette.responses import Response

from fundroom.core.config import settings
from fundroom.core.enums import LoginPortal, Role

logger = logging.getLogger(__name__)

_ALGORITHM = "HS256"
_REGISTERED_CLAIMS = frozenset({"sub", "iat", "exp", "aud", "iss"})


class SessionClaims(BaseModel):
    """Identity and role claims carried in the session token.

    Unknown keys and out-of-range role/portal values fail validation, and a
    token that fails validation is treated as absent.
    """

    model_config = ConfigDict(populate_by_name=True, extra="forbid", frozen=True)

    id: str = Field(min_length=1)
    email: str = Field(min_length=3)
    name: str | None = None
    picture: str | None = None
    role: Role
    login_portal: LoginPortal = Field(alias="loginPortal")
    created_at: datetime | None = Field(default=None, alias="createdAt")

    # Registered claims, populated on decode
    sub: str | None = None
    iat: int | None = None
    exp: int | None = None
    aud: str | None = None
    iss: str | None = None

    @property
    def issued_at(self) -> datetime | None:
        if self.iat is None:
            return None
        return datetime.fromtimestamp(self.iat, tz=UTC)


def create_session_token(claims: SessionClaims, *, now: datetime | None = None) -> str:
    """Sign a session token with the fixed absolute lifetime.

    Args:
        claims: Identity claims. Registered claims on the input are ignored
            and re-derived.
        now: Issue time. Defaults to the current time.

    Returns:
        Encoded JWT string.
    """
    issued = now or datetime.now(UTC)
    payload = claims.model_dump(
        by_alias=True,
        mode="json",
        exclude=set(_REGISTERED_CLAIMS),
    )
    payload.update(
        sub=claims.id,
        iat=int(issued.timestamp()),
        exp=int((issued + settings.session_max_age).timestamp()),
        aud=settings.auth_audience,
        iss=settings.auth_issuer,
    )
    return jwt.encode(
        payload,
        settings.auth_secret.get_secret_value(),
        algorithm=_ALGORITHM,
    )


def decode_session_token(token: str | None) -> SessionClaims | None:
    """Decode and validate a session token.

    Any signature, expiry, audience, issuer or claim-shape problem yields
    None. Callers treat None as "unauthenticated", never as an error.

    Args:
        token: Raw cookie value.

    Returns:
        Validated claims, or None.
    """
    if not token:
        return None
    try:
        payload = jwt.decode(
            token,
            settings.auth_secret.get_secret_value(),
            algorithms=[_ALGORITHM],
            audience=settings.auth_audience,
            issuer=settings.auth_issuer,
            options={"require": ["sub", "iat", "exp"]},
        )
    except jwt.InvalidTokenError:
        return None

    try:
        claims = SessionClaims.model_validate(payload)
    except PydanticValidationError:
        logger.info("Session token rejected: claim validation failed")
        return None

    if claims.sub != claims.id:
        return None
    return claims


def get_session(conn: HTTPConnection) -> SessionClaims | None:
    """Decode the session cookie of a request or websocket."""
    return decode_session_token(conn.cookies.get(settings.session_cookie_name))


def needs_renewal(claims: SessionClaims, now: datetime) -> bool:
    """Whether the token is older than the renewal age.

    Args:
        claims: Decoded claims.
        now: Current time.

    Returns:
        True if a fresh token should be issued with this response.
    """
    issued = claims.issued_at
    if issued is None:
        return False
    return now - issued >= settings.session_update_age


def set_session_cookie(response: Response, token: str) -> None:
    """Set the HttpOnly session cookie on a response.

    Security: HttpOnly, SameSite and Path=/ always; Secure in production or
    when the canonical URL is HTTPS.

    Args:
        response: Starlette/FastAPI response.
        token: Encoded session token.
    """
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        httponly=True,
        secure=settings.secure_cookies,
        samesite=settings.auth_cookie_samesite,
        path="/",
        max_age=settings.session_max_age_seconds,
    )


def clear_session_cookie(response: Response) -> None:
    """Expire the session cookie."""
    response.delete_cookie(
        key=settings.session_cookie_name,
        path="/",
        secure=settings.secure_cookies,
        httponly=True,
        samesite=settings.auth_cookie_samesite,
    )


def session_cookie_header(token: str) -> str:
    """Render the Set-Cookie header value for a session token.

    Used by the ASGI layer, which appends headers to responses it did not
    build itself.

    Args:
        token: Encoded session token.

    Returns:
        Header value with the same attributes as set_session_cookie.
    """
    response = Response()
    set_session_cookie(response, token)
    return response.headers["set-cookie"]

"""Visitor e-mail link endpoints.

Endpoints:
- POST /auth/login-link: e-mail a sign-in link
- POST /auth/verify-link: validate a link, or consume it and sign in
"""

import logging
from datetime import UTC, datetime
from typing import Literal

from fastapi import APIRouter, Request
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from fundroom.api.deps import AuthRateLimit, DbSession
from fundroom.core.config import settings
from fundroom.core.email import send_login_link_email
from fundroom.core.enums import LoginPortal, Role
from fundroom.core.errors import EmailDeliveryError, InternalError, ValidationError
from fundroom.core.logging import mask_email
from fundroom.core.responses import DataResponse
from fundroom.core.session import (
    SessionClaims,
    create_session_token,
    set_session_cookie,
)
from fundroom.repositories.user_repository import UserRepository
from fundroom.repositories.user_team_repository import UserTeamRepository
from fundroom.routing.guard import VIEWER_REDIRECT_PATH, safe_next_path
from fundroom.services.login_link import (
    check_login_link,
    consume_login_link,
    create_login_link,
)
from fundroom.services.redirects import resolve_base_url

logger = logging.getLogger(__name__)

router = APIRouter()

# Security: identical for unknown, mismatched, expired and reused links
_INVALID_LINK_MSG = "This link is invalid or has expired."


class LoginLinkRequest(BaseModel):
    """Request body for POST /auth/login-link."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    next: str | None = Field(default=None, max_length=2048)


class VerifyLinkRequest(BaseModel):
    """Request body for POST /auth/verify-link."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1, max_length=128)
    checksum: str = Field(min_length=1, max_length=128)
    email: EmailStr | None = None
    action: Literal["validate", "sign_in"] = "validate"


@router.post("/login-link")
async def request_login_link(
    request: Request,
    body: LoginLinkRequest,
    db: DbSession,
    _limit: AuthRateLimit,
) -> DataResponse[dict]:
    """Create a visitor sign-in link and e-mail it.

    The ``next`` destination is stored server-side; only relative,
    non-login paths are kept.

    Rate limit: auth tier (10 per hour per IP).
    """
    email = str(body.email).strip().lower()
    callback_url = safe_next_path(body.next) or VIEWER_REDIRECT_PATH
    base_url = settings.verification_email_base_url.rstrip("/") or resolve_base_url(
        settings, request.headers
    )

    url = await create_login_link(
        db, email=email, callback_url=callback_url, base_url=base_url
    )
    await db.commit()

    try:
        await send_login_link_email(to_email=email, url=url)
    except EmailDeliveryError as exc:
        raise InternalError("Failed to send login link") from exc

    return DataResponse(data={"message": "Login link sent to your email"})


@router.post("/verify-link", response_model=None)
async def verify_link(
    body: VerifyLinkRequest,
    db: DbSession,
    limit: AuthRateLimit,
) -> DataResponse[dict] | RedirectResponse:
    """Validate or redeem a visitor sign-in link.

    ``validate`` leaves the link usable. ``sign_in`` consumes it, finds or
    creates the user and redirects (303) to the stored destination with a
    fresh session cookie.

    Rate limit: auth tier (10 per hour per IP).
    """
    email = str(body.email) if body.email is not None else None

    if body.action == "validate":
        row = await check_login_link(db, token=body.id, checksum=body.checksum, email=email)
        await db.commit()
        if row is None:
            raise ValidationError(_INVALID_LINK_MSG)
        return DataResponse(data={"valid": True})

    row = await consume_login_link(db, token=body.id, checksum=body.checksum, email=email)
    if row is None:
        await db.commit()
        raise ValidationError(_INVALID_LINK_MSG)

    now = datetime.now(UTC)
    user = await UserRepository.get_or_create_visitor(
        db, email=row.identifier, verified_at=now
    )
    is_admin = await UserTeamRepository.has_admin_membership(db, user.email)
    await db.commit()

    claims = SessionClaims(
        id=str(user.id),
        email=user.email,
        name=user.name,
        picture=user.image,
        role=Role.GP if is_admin else Role(user.role),
        login_portal=LoginPortal.ADMIN if is_admin else LoginPortal.VISITOR,
        created_at=user.created_at,
    )
    logger.info("Visitor sign-in for %s", mask_email(user.email))

    response = RedirectResponse(url=row.callback_url, status_code=303)
    set_session_cookie(response, create_session_token(claims, now=now))
    response.headers["Referrer-Policy"] = "no-referrer"
    return limit.apply(response)

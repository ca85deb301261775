"""Administrator magic-link endpoints.

Endpoints:
- POST /auth/admin-login: e-mail a magic link to an administrator
- GET /auth/admin-magic-verify: consume the link, issue a GP session,
  redirect into the admin portal
"""

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Request
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import SQLAlchemyError

from fundroom.api.deps import AuthRateLimit, DbSession
from fundroom.core.config import settings
from fundroom.core.email import send_admin_login_email
from fundroom.core.enums import LoginPortal, Role
from fundroom.core.errors import (
    EmailDeliveryError,
    ForbiddenError,
    InternalError,
    ValidationError,
)
from fundroom.core.logging import mask_email
from fundroom.core.monitoring import get_error_reporter
from fundroom.core.responses import DataResponse
from fundroom.core.session import (
    SessionClaims,
    create_session_token,
    set_session_cookie,
)
from fundroom.repositories.user_repository import UserRepository
from fundroom.services.admin_access import is_user_admin, normalize_email
from fundroom.services.admin_magic_link import (
    create_admin_magic_link,
    verify_admin_magic_link,
)
from fundroom.services.redirects import (
    DEFAULT_ADMIN_REDIRECT,
    resolve_base_url,
    safe_redirect_path,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# Security: one message for every refusal, never which check failed
_NOT_ADMIN_MSG = "Access denied. You are not an administrator."


class AdminLoginRequest(BaseModel):
    """Request body for POST /auth/admin-login."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    email: str = Field(max_length=320)
    redirect_path: str | None = Field(
        default=None, alias="redirectPath", max_length=2048
    )


# ===================================================================
# POST /auth/admin-login
# ===================================================================


@router.post("/admin-login")
async def admin_login(
    request: Request,
    body: AdminLoginRequest,
    db: DbSession,
    _limit: AuthRateLimit,
) -> DataResponse[dict]:
    """E-mail a single-use magic link to an administrator.

    Non-administrators get a generic 403 and no link is created.

    Rate limit: auth tier (10 per hour per IP).
    """
    email = normalize_email(body.email)
    if not email:
        raise ValidationError("Email is required")

    if not await is_user_admin(db, email):
        logger.info("Admin login refused for %s", mask_email(email))
        raise ForbiddenError(_NOT_ADMIN_MSG)

    base_url = resolve_base_url(settings, request.headers)
    try:
        link = await create_admin_magic_link(
            db,
            email=email,
            base_url=base_url,
            redirect_path=body.redirect_path or DEFAULT_ADMIN_REDIRECT,
        )
        await db.commit()
    except SQLAlchemyError as exc:
        logger.error("Failed to store admin magic link", exc_info=True)
        raise InternalError("Failed to create login link") from exc

    if link is None:
        raise ForbiddenError(_NOT_ADMIN_MSG)

    try:
        await send_admin_login_email(to_email=email, magic_link=link.url)
    except EmailDeliveryError as exc:
        raise InternalError("Failed to send login link") from exc

    return DataResponse(
        data={"success": True, "message": "Login link sent to your email"}
    )


# ===================================================================
# GET /auth/admin-magic-verify
# ===================================================================


def _first_param(request: Request, name: str) -> str | None:
    """First value of a possibly repeated query parameter."""
    values = request.query_params.getlist(name)
    return values[0] if values else None


def _login_error(code: str) -> RedirectResponse:
    return RedirectResponse(url=f"/login?error={code}", status_code=302)


@router.get("/admin-magic-verify")
async def admin_magic_verify(
    request: Request,
    db: DbSession,
    limit: AuthRateLimit,
) -> RedirectResponse:
    """Consume an administrator magic link and start a GP session.

    Missing parameters redirect to /login?error=InvalidLink, a link that
    fails verification to /login?error=ExpiredLink, and an unexpected
    failure (reported to monitoring) to /login?error=VerificationFailed.
    The post-login destination is clamped to the redirect allow-list.

    Rate limit: auth tier (10 per hour per IP).
    """
    token = _first_param(request, "token")
    email = _first_param(request, "email")
    redirect = _first_param(request, "redirect")

    if not token or not email:
        return _login_error("InvalidLink")

    normalized = normalize_email(email)
    try:
        if not await verify_admin_magic_link(db, token=token, email=normalized):
            # Persist deletion of an expired token
            await db.commit()
            return _login_error("ExpiredLink")

        now = datetime.now(UTC)
        user = await UserRepository.upsert_admin(
            db, email=normalized, verified_at=now
        )
        await db.commit()

        session_token = create_session_token(
            SessionClaims(
                id=str(user.id),
                email=user.email,
                name=user.name,
                picture=user.image,
                role=Role.GP,
                login_portal=LoginPortal.ADMIN,
            ),
            now=now,
        )
    except Exception as exc:
        await db.rollback()
        get_error_reporter().report_error(
            exc,
            path=request.url.path,
            method=request.method,
            host=request.headers.get("host"),
        )
        return _login_error("VerificationFailed")

    get_error_reporter().report_info(
        "auth.admin_magic_link.sign_in", email=mask_email(normalized)
    )

    response = RedirectResponse(url=safe_redirect_path(redirect), status_code=302)
    set_session_cookie(response, session_token)
    # Prevent token leakage via Referer header
    response.headers["Referrer-Policy"] = "no-referrer"
    return limit.apply(response)

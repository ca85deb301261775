"""Administrator magic links.

Lifecycle: Requested -> Pending -> Consumed, or Pending -> Expired.
Tokens are uuid4 strings stored in verification_tokens under the
identifier ``admin-magic:<email>`` with a 60-minute TTL. Verification
consumes the row; a second attempt with the same token fails exactly like
an unknown token.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from urllib.parse import urlencode

from sqlalchemy.ext.asyncio import AsyncSession

from fundroom.core.logging import mask_email
from fundroom.repositories.verification_token_repository import (
    VerificationTokenRepository,
)
from fundroom.services.admin_access import is_user_admin, normalize_email

logger = logging.getLogger(__name__)

ADMIN_MAGIC_LINK_TTL = timedelta(minutes=60)
VERIFY_PATH = "/api/auth/admin-magic-verify"


def admin_identifier(email: str) -> str:
    return f"admin-magic:{normalize_email(email)}"


@dataclass(frozen=True)
class AdminMagicLink:
    """Issued link.

    Attributes:
        url: Absolute verification URL to e-mail.
        token: Opaque token embedded in the URL.
        expires: Expiry timestamp.
    """

    url: str
    token: str
    expires: datetime


async def create_admin_magic_link(
    db: AsyncSession,
    *,
    email: str,
    base_url: str,
    redirect_path: str | None = None,
) -> AdminMagicLink | None:
    """Issue a magic link for an administrator.

    Purges pending links for the same address first, so at most one link
    per administrator is live.

    Args:
        db: Async database session (caller commits).
        email: Administrator address.
        base_url: Absolute base URL, no trailing slash.
        redirect_path: Optional post-verification path, carried as-is in
            the URL and clamped on verification.

    Returns:
        AdminMagicLink, or None if the address is not an administrator.

    Raises:
        sqlalchemy.exc.SQLAlchemyError: If the token cannot be stored.
    """
    normalized = normalize_email(email)
    if not await is_user_admin(db, normalized):
        logger.warning("Magic link refused for non-admin %s", mask_email(normalized))
        return None

    identifier = admin_identifier(normalized)
    token = str(uuid.uuid4())
    expires = datetime.now(UTC) + ADMIN_MAGIC_LINK_TTL

    await VerificationTokenRepository.delete_all_for_identifier(db, identifier)
    await VerificationTokenRepository.create(
        db,
        identifier=identifier,
        token=token,
        expires=expires,
    )

    params = {"token": token, "email": normalized}
    if redirect_path:
        params["redirect"] = redirect_path
    url = f"{base_url}{VERIFY_PATH}?{urlencode(params)}"

    logger.info("Created admin magic link for %s", mask_email(normalized))
    return AdminMagicLink(url=url, token=token, expires=expires)


async def verify_admin_magic_link(db: AsyncSession, *, token: str, email: str) -> bool:
    """Verify and consume an administrator magic link.

    Steps: administrator check, token lookup, identifier match, expiry
    (expired rows are deleted), consume. Every failure returns False with
    no indication of which check failed.

    Args:
        db: Async database session (caller commits).
        token: Token from the URL.
        email: Address from the URL.

    Returns:
        True if the link was valid and has now been consumed.
    """
    normalized = normalize_email(email)
    if not await is_user_admin(db, normalized):
        return False

    verification = await VerificationTokenRepository.get_by_token(db, token)
    if verification is None:
        return False

    if verification.identifier != admin_identifier(normalized):
        logger.warning("Magic link identifier mismatch for %s", mask_email(normalized))
        return False

    if verification.expires < datetime.now(UTC):
        await VerificationTokenRepository.delete(db, token)
        return False

    # Zero rows means a concurrent request consumed it first
    return await VerificationTokenRepository.delete(db, token) == 1

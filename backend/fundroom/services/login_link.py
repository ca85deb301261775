"""Visitor sign-in links.

The e-mailed URL carries only an opaque token and an HMAC checksum of it;
the post-sign-in destination is stored server-side. Same lifecycle as the
administrator links: purge on issue, 30-minute TTL, single use.
"""

import hashlib
import hmac
import logging
import secrets
from datetime import UTC, datetime, timedelta
from urllib.parse import urlencode

from sqlalchemy.ext.asyncio import AsyncSession

from fundroom.core.config import settings
from fundroom.core.logging import mask_email
from fundroom.models.magic_link_callback import MagicLinkCallback
from fundroom.repositories.magic_link_callback_repository import (
    MagicLinkCallbackRepository,
)
from fundroom.services.admin_access import normalize_email

logger = logging.getLogger(__name__)

LOGIN_LINK_TTL = timedelta(minutes=30)
VERIFY_PAGE_PATH = "/verify"
_TOKEN_BYTES = 32


def generate_checksum(token: str) -> str:
    """HMAC-SHA256 of the token under AUTH_SECRET, hex encoded."""
    return hmac.new(
        settings.auth_secret.get_secret_value().encode(),
        token.encode(),
        hashlib.sha256,
    ).hexdigest()


def verify_checksum(token: str, checksum: str) -> bool:
    """Constant-time checksum comparison."""
    return hmac.compare_digest(generate_checksum(token), checksum)


async def create_login_link(
    db: AsyncSession,
    *,
    email: str,
    callback_url: str,
    base_url: str,
) -> str:
    """Issue a visitor sign-in link.

    Args:
        db: Async database session (caller commits).
        email: Visitor address.
        callback_url: Relative path to land on after sign-in.
        base_url: Absolute base URL, no trailing slash.

    Returns:
        Absolute verification URL.
    """
    identifier = normalize_email(email)
    token = secrets.token_hex(_TOKEN_BYTES)

    await MagicLinkCallbackRepository.replace_for_identifier(
        db,
        identifier=identifier,
        token=token,
        callback_url=callback_url,
        expires=datetime.now(UTC) + LOGIN_LINK_TTL,
    )

    query = urlencode({"id": token, "checksum": generate_checksum(token)})
    logger.info("Created login link for %s", mask_email(identifier))
    return f"{base_url}{VERIFY_PAGE_PATH}?{query}"


async def check_login_link(
    db: AsyncSession,
    *,
    token: str,
    checksum: str,
    email: str | None = None,
) -> MagicLinkCallback | None:
    """Validate a link without consuming it.

    The checksum is verified before any lookup. Expired rows are deleted.

    Args:
        db: Async database session (caller commits).
        token: ``id`` from the URL.
        checksum: ``checksum`` from the URL.
        email: Optional address the caller claims; must match the row.

    Returns:
        The pending row, or None if the link is invalid or expired.
    """
    if not token or not checksum or not verify_checksum(token, checksum):
        return None

    row = await MagicLinkCallbackRepository.get_by_token(db, token)
    if row is None:
        return None

    if email is not None and row.identifier != normalize_email(email):
        return None

    if row.expires < datetime.now(UTC):
        await MagicLinkCallbackRepository.delete(db, token)
        return None

    return row


async def consume_login_link(
    db: AsyncSession,
    *,
    token: str,
    checksum: str,
    email: str | None = None,
) -> MagicLinkCallback | None:
    """Validate and consume a link.

    Args:
        db: Async database session (caller commits).
        token: ``id`` from the URL.
        checksum: ``checksum`` from the URL.
        email: Optional address the caller claims.

    Returns:
        The consumed row (detached values remain readable), or None.
    """
    row = await check_login_link(db, token=token, checksum=checksum, email=email)
    if row is None:
        return None
    if await MagicLinkCallbackRepository.delete(db, token) != 1:
        return None
    return row

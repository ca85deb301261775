"""Administrator authorization.

An address is an administrator when it is on the static allow-list
(ADMIN_EMAILS) or holds an ACTIVE OWNER / ADMIN / SUPER_ADMIN team role.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fundroom.core.config import settings
from fundroom.core.logging import mask_email
from fundroom.repositories.user_team_repository import UserTeamRepository

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def is_admin_email(email: str) -> bool:
    """Static allow-list check (case-insensitive)."""
    normalized = normalize_email(email)
    return bool(normalized) and normalized in settings.admin_email_set


async def is_user_admin(db: AsyncSession, email: str) -> bool:
    """Allow-list or database team-role check.

    Fails closed: a database error is logged and treated as "not admin".

    Args:
        db: Async database session.
        email: Address to check.

    Returns:
        True if the address is an administrator.
    """
    normalized = normalize_email(email)
    if not normalized:
        return False
    if is_admin_email(normalized):
        return True
    try:
        return await UserTeamRepository.has_admin_membership(db, normalized)
    except SQLAlchemyError:
        logger.warning(
            "Admin team lookup failed for %s", mask_email(normalized), exc_info=True
        )
        return False

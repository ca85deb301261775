"""Read-only team-membership queries for admin checks."""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fundroom.core.enums import ADMIN_TEAM_ROLES, MembershipStatus
from fundroom.models.team import UserTeam
from fundroom.models.user import User


class UserTeamRepository:
    """Stateless repository for UserTeam lookups."""

    @staticmethod
    async def has_admin_membership(db: AsyncSession, email: str) -> bool:
        """Whether the address holds an ACTIVE admin-level team role.

        Email matching is case-insensitive.

        Args:
            db: Async database session.
            email: Address to check.

        Returns:
            True if at least one ACTIVE OWNER, ADMIN or SUPER_ADMIN
            membership exists.
        """
        stmt = (
            select(UserTeam.id)
            .join(User, User.id == UserTeam.user_id)
            .where(
                func.lower(User.email) == email.lower(),
                UserTeam.role.in_([r.value for r in ADMIN_TEAM_ROLES]),
                UserTeam.status == MembershipStatus.ACTIVE.value,
            )
            .limit(1)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none() is not None

"""Team and UserTeam models.

Team membership is consulted (read-only) by the database-backed admin
lookup: an ACTIVE OWNER / ADMIN / SUPER_ADMIN membership makes a user an
administrator.
"""

import uuid

from sqlalchemy import ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fundroom.core.enums import MembershipStatus, TeamRole
from fundroom.models.base import Base, TimestampMixin
from fundroom.models.user import User


class Team(Base, TimestampMixin):
    """Fund-manager organization (tenant)."""

    __tablename__ = "teams"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    members: Mapped[list["UserTeam"]] = relationship(
        "UserTeam",
        back_populates="team",
        cascade="all, delete-orphan",
    )


class UserTeam(Base, TimestampMixin):
    """Membership of a user in a team.

    Attributes:
        user_id: Member user.
        team_id: Team.
        role: One of TeamRole values.
        status: "ACTIVE" or "INACTIVE".
    """

    __tablename__ = "user_teams"
    __table_args__ = (
        UniqueConstraint("user_id", "team_id", name="uq_user_teams_user_team"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    team_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("teams.id", ondelete="CASCADE"),
        nullable=False,
    )
    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=TeamRole.MEMBER.value,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=MembershipStatus.ACTIVE.value,
    )

    user: Mapped[User] = relationship("User", back_populates="teams")
    team: Mapped[Team] = relationship("Team", back_populates="members")

"""User model - authentication foundation.

Role is the portal role (GP or LP) copied into session tokens at sign-in.
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fundroom.core.enums import Role
from fundroom.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from fundroom.models.team import UserTeam


class User(Base, TimestampMixin):
    """User account for authentication.

    Attributes:
        id: UUID primary key.
        email: Unique, lower-cased email address.
        name: Display name.
        email_verified: Timestamp when email was verified. NULL = unverified.
        image: Profile picture URL.
        role: Portal role, "GP" or "LP". Defaults to "LP".
        created_at: Account creation timestamp (from TimestampMixin).
        updated_at: Last modification timestamp (from TimestampMixin).
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=uuid.uuid4,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    name: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    email_verified: Mapped[datetime | None] = mapped_column(
        nullable=True,
    )
    image: Mapped[str | None] = mapped_column(
        Text(),
        nullable=True,
    )
    role: Mapped[str] = mapped_column(
        String(2),
        nullable=False,
        default=Role.LP.value,
        server_default=Role.LP.value,
    )

    teams: Mapped[list["UserTeam"]] = relationship(
        "UserTeam",
        back_populates="user",
        cascade="all, delete-orphan",
    )

"""Verification token model - admin magic link tokens.

Single-use, time-limited. The token column is unique and is the lookup key;
the identifier binds the token to ``admin-magic:<email>``.
"""

from datetime import datetime

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from fundroom.models.base import Base


class VerificationToken(Base):
    """Admin magic link verification token.

    Entries are single-use and time-limited. Looked up by token and
    deleted on successful verification or when found expired.

    Attributes:
        identifier: ``admin-magic:<email>``.
        token: Opaque unique token (UUID4 string).
        expires: Token expiry timestamp.
    """

    __tablename__ = "verification_tokens"

    token: Mapped[str] = mapped_column(
        String(255),
        primary_key=True,
    )
    identifier: Mapped[str] = mapped_column(
        String(320),
        nullable=False,
        index=True,
    )
    expires: Mapped[datetime] = mapped_column(
        nullable=False,
    )

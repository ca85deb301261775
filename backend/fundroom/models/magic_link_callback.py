"""Visitor sign-in link model.

One live row per e-mail. The e-mailed URL carries only the token and an
HMAC checksum; the post-sign-in destination stays server-side in
``callback_url``.
"""

from datetime import datetime

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from fundroom.models.base import Base


class MagicLinkCallback(Base):
    """Pending visitor sign-in link.

    Attributes:
        token: 64 hex characters (32 random bytes). Primary key.
        identifier: Lower-cased e-mail address.
        callback_url: Relative path to land on after sign-in.
        expires: Link expiry timestamp.
    """

    __tablename__ = "magic_link_callbacks"

    token: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
    )
    identifier: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )
    callback_url: Mapped[str] = mapped_column(
        Text(),
        nullable=False,
    )
    expires: Mapped[datetime] = mapped_column(
        nullable=False,
    )

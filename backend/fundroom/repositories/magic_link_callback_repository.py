"""Repository for MagicLinkCallback (visitor sign-in link) rows."""

from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from fundroom.models.magic_link_callback import MagicLinkCallback


class MagicLinkCallbackRepository:
    """Stateless repository for MagicLinkCallback table operations."""

    @staticmethod
    async def replace_for_identifier(
        db: AsyncSession,
        *,
        identifier: str,
        token: str,
        callback_url: str,
        expires: datetime,
    ) -> MagicLinkCallback:
        """Delete any pending links for the identifier, then store a new one.

        Args:
            db: Async database session.
            identifier: Lower-cased e-mail address.
            token: 64-character hex token.
            callback_url: Post-sign-in destination.
            expires: Link expiry timestamp.

        Returns:
            Created MagicLinkCallback.
        """
        await db.execute(
            delete(MagicLinkCallback).where(
                MagicLinkCallback.identifier == identifier,
            )
        )
        row = MagicLinkCallback(
            identifier=identifier,
            token=token,
            callback_url=callback_url,
            expires=expires,
        )
        db.add(row)
        await db.flush()
        return row

    @staticmethod
    async def get_by_token(
        db: AsyncSession, token: str
    ) -> MagicLinkCallback | None:
        """Look up a pending link by token.

        Args:
            db: Async database session.
            token: Hex token from the URL.

        Returns:
            MagicLinkCallback if found, None otherwise.
        """
        stmt = select(MagicLinkCallback).where(MagicLinkCallback.token == token)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def delete(db: AsyncSession, token: str) -> int:
        """Delete a pending link.

        Args:
            db: Async database session.
            token: Hex token.

        Returns:
            Number of deleted rows.
        """
        result = await db.execute(
            delete(MagicLinkCallback).where(MagicLinkCallback.token == token)
        )
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count

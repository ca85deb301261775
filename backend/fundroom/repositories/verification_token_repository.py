"""Repository for VerificationToken operations.

Admin magic links: single-use tokens looked up by token value and bound to
an ``admin-magic:<email>`` identifier.
"""

from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from fundroom.models.verification_token import VerificationToken


class VerificationTokenRepository:
    """Stateless repository for VerificationToken table operations."""

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        identifier: str,
        token: str,
        expires: datetime,
    ) -> VerificationToken:
        """Store a new verification token.

        Args:
            db: Async database session.
            identifier: ``admin-magic:<email>``.
            token: Opaque token value.
            expires: Token expiry timestamp.

        Returns:
            Created VerificationToken.
        """
        vt = VerificationToken(
            identifier=identifier,
            token=token,
            expires=expires,
        )
        db.add(vt)
        await db.flush()
        return vt

    @staticmethod
    async def get_by_token(
        db: AsyncSession, token: str
    ) -> VerificationToken | None:
        """Look up a token by value.

        Args:
            db: Async database session.
            token: Opaque token value.

        Returns:
            VerificationToken if found, None otherwise.
        """
        stmt = select(VerificationToken).where(VerificationToken.token == token)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def delete(db: AsyncSession, token: str) -> int:
        """Delete a token (single-use cleanup).

        Args:
            db: Async database session.
            token: Opaque token value.

        Returns:
            Number of deleted rows (0 when a concurrent request won).
        """
        stmt = delete(VerificationToken).where(VerificationToken.token == token)
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count

    @staticmethod
    async def delete_all_for_identifier(db: AsyncSession, identifier: str) -> None:
        """Purge pending tokens for an identifier before issuing a new one.

        Args:
            db: Async database session.
            identifier: ``admin-magic:<email>``.
        """
        stmt = delete(VerificationToken).where(
            VerificationToken.identifier == identifier,
        )
        await db.execute(stmt)

"""Repository for User operations used by the sign-in flows."""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fundroom.core.enums import Role
from fundroom.models.user import User


class UserRepository:
    """Stateless repository for User table operations.

    All methods are static. Pass an AsyncSession for every call so the
    caller controls transaction boundaries.
    """

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> User | None:
        """Fetch a user by email address (case-insensitive).

        Args:
            db: Async database session.
            email: Email address to look up.

        Returns:
            User if found, None otherwise.
        """
        stmt = select(User).where(User.email == email.lower())
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        email: str,
        name: str | None = None,
        email_verified: datetime | None = None,
        role: Role = Role.LP,
    ) -> User:
        """Create a new user.

        Email is normalized to lowercase before storage.

        Args:
            db: Async database session.
            email: User email address.
            name: Display name.
            email_verified: Timestamp when email was verified.
            role: Portal role.

        Returns:
            Created User with database-generated fields populated.

        Raises:
            sqlalchemy.exc.IntegrityError: If email already exists.
        """
        user = User(
            email=email.lower(),
            name=name,
            email_verified=email_verified,
            role=role.value,
        )
        db.add(user)
        await db.flush()
        await db.refresh(user)
        return user

    @staticmethod
    async def upsert_admin(
        db: AsyncSession,
        *,
        email: str,
        verified_at: datetime,
    ) -> User:
        """Create or promote the user for a verified admin magic link.

        Existing users get role GP; their verification timestamp is left as
        is. New users are created verified with role GP.

        Args:
            db: Async database session.
            email: Verified admin address.
            verified_at: Timestamp to record for new users.

        Returns:
            The GP user.
        """
        user = await UserRepository.get_by_email(db, email)
        if user is None:
            return await UserRepository.create(
                db,
                email=email,
                email_verified=verified_at,
                role=Role.GP,
            )
        user.role = Role.GP.value
        await db.flush()
        await db.refresh(user)
        return user

    @staticmethod
    async def get_or_create_visitor(
        db: AsyncSession,
        *,
        email: str,
        verified_at: datetime,
    ) -> User:
        """Fetch the user for a visitor link, creating an LP user if absent.

        Marks an unverified existing user as verified: following the
        e-mailed link proves ownership of the address.

        Args:
            db: Async database session.
            email: Address the link was sent to.
            verified_at: Verification timestamp.

        Returns:
            The user.
        """
        user = await UserRepository.get_by_email(db, email)
        if user is None:
            return await UserRepository.create(
                db,
                email=email,
                email_verified=verified_at,
            )
        if user.email_verified is None:
            user.email_verified = verified_at
            await db.flush()
            await db.refresh(user)
        return user

"""Repository for User operations.

Provides database access for the users table. Used by the auth endpoints;
the task core only reads users by id when confirming an identity.
"""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.models.base import utcnow
from taskboard.models.user import User


class UserRepository:
    """Stateless repository for User table operations.

    All methods are static; there is no instance state. Pass an AsyncSession
    for every call so the caller controls transaction boundaries.
    """

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: uuid.UUID) -> User | None:
        """Fetch a user by primary key.

        Args:
            db: Async database session.
            user_id: UUID primary key.

        Returns:
            User if found, None otherwise.
        """
        return await db.get(User, user_id)

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> User | None:
        """Fetch a user by email address (case-insensitive).

        Args:
            db: Async database session.
            email: Email address to look up.

        Returns:
            User if found, None otherwise.
        """
        stmt = select(User).where(User.email == email.strip().lower())
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        email: str,
        password_hash: str,
    ) -> User:
        """Create a new user.

        Email is normalized to lowercase before storage.

        Args:
            db: Async database session.
            email: User email address.
            password_hash: bcrypt hash.

        Returns:
            Created User with generated id and timestamps populated.

        Raises:
            sqlalchemy.exc.IntegrityError: If email already exists.
        """
        now = utcnow()
        user = User(
            email=email.strip().lower(),
            password_hash=password_hash,
            created_at=now,
            updated_at=now,
        )
        db.add(user)
        await db.flush()
        return user

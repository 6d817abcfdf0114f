"""
User Repository

Database operations for user management. Emails are always compared and
stored lower-cased.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from diploma_api.modules.users.models import User, UserRole

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for user database operations."""

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        email: str,
        password_hash: str,
        role: UserRole,
        university_id: int | None = None,
        is_active: bool = True,
        is_verified: bool = False,
    ) -> User:
        """
        Create a new user record.

        Args:
            db: Database session
            email: User's email address (unique, stored lower-cased)
            password_hash: Hashed password
            role: User's role
            university_id: University ID (required for non-platform_admin roles)
            is_active: Whether user is active
            is_verified: Whether email is verified

        Returns:
            Created User instance
        """
        user = User(
            email=email.strip().lower(),
            password_hash=password_hash,
            role=role,
            university_id=university_id,
            is_active=is_active,
            is_verified=is_verified,
        )

        db.add(user)
        await db.flush()
        await db.refresh(user)

        logger.info(f"Created user: {user.id} - {user.email} ({user.role.value})")
        return user

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: int) -> User | None:
        """Get a user by ID."""
        return await db.get(User, user_id)

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> User | None:
        """Get a user by email address (case-insensitive)."""
        result = await db.execute(select(User).where(User.email == email.strip().lower()))
        return result.scalar_one_or_none()

    @staticmethod
    async def email_exists(db: AsyncSession, email: str) -> bool:
        """Check if an email address is already registered."""
        user = await UserRepository.get_by_email(db, email)
        return user is not None

    @staticmethod
    async def mark_verified(db: AsyncSession, user: User) -> User:
        """Mark a user's email as verified."""
        user.is_verified = True

        await db.flush()
        await db.refresh(user)

        logger.info(f"Verified email for user {user.id}")
        return user

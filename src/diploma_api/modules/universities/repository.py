"""
University Repository

Database operations for universities and university-admin invitations.
"""

import logging
from datetime import datetime

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from diploma_api.modules.universities.models import InvitationToken, University
from diploma_api.modules.users.models import User, UserRole

logger = logging.getLogger(__name__)


class UniversityRepository:
    """Repository for university database operations."""

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        name: str,
        domain: str,
        accreditation_details: str | None = None,
        is_verified: bool = False,
    ) -> University:
        """
        Create a new university record.

        Args:
            db: Database session
            name: University name (unique)
            domain: Canonical email domain including leading "@" (unique)
            accreditation_details: Free-text accreditation information
            is_verified: Whether the university may issue degrees

        Returns:
            Created University instance
        """
        university = University(
            name=name,
            domain=domain,
            accreditation_details=accreditation_details,
            is_verified=is_verified,
        )

        db.add(university)
        await db.flush()
        await db.refresh(university)

        logger.info(f"Created university: {university.id} - {university.name}")
        return university

    @staticmethod
    async def get_by_id(db: AsyncSession, university_id: int) -> University | None:
        """Get a university by ID."""
        return await db.get(University, university_id)

    @staticmethod
    async def get_by_name(db: AsyncSession, name: str) -> University | None:
        """Get a university by name, case-insensitively."""
        result = await db.execute(
            select(University).where(func.lower(University.name) == name.strip().lower())
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_domain(db: AsyncSession, domain: str) -> University | None:
        """Get a university by its canonical domain."""
        result = await db.execute(select(University).where(University.domain == domain))
        return result.scalar_one_or_none()

    @staticmethod
    async def list_verified(db: AsyncSession) -> list[University]:
        """All verified universities, ordered by name."""
        result = await db.execute(
            select(University).where(University.is_verified.is_(True)).order_by(University.name)
        )
        return list(result.scalars().all())

    @staticmethod
    async def list_verified_with_admins(
        db: AsyncSession,
    ) -> list[tuple[University, User | None]]:
        """
        Verified universities paired with their university admin.

        Universities without an admin appear once with None. A university
        with several admins appears once per admin, oldest first.
        """
        result = await db.execute(
            select(University, User)
            .outerjoin(
                User,
                (User.university_id == University.id)
                & (User.role == UserRole.UNIVERSITY_ADMIN),
            )
            .where(University.is_verified.is_(True))
            .order_by(University.name, User.created_at)
        )
        return [(university, admin) for university, admin in result.all()]

    # ============================================
    # Invitation Tokens
    # ============================================

    @staticmethod
    async def create_invitation(
        db: AsyncSession,
        *,
        university_id: int,
        email: str,
        token_hash: str,
        expires_at: datetime,
    ) -> InvitationToken:
        """Store a hashed invitation token."""
        invitation = InvitationToken(
            university_id=university_id,
            email=email,
            token=token_hash,
            expires_at=expires_at,
        )

        db.add(invitation)
        await db.flush()
        await db.refresh(invitation)

        return invitation

    @staticmethod
    async def get_invitation(db: AsyncSession, token_hash: str) -> InvitationToken | None:
        """Get an invitation by its hashed token."""
        result = await db.execute(
            select(InvitationToken).where(InvitationToken.token == token_hash)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def delete_invitation(db: AsyncSession, invitation_id: int) -> None:
        """Delete a single invitation."""
        await db.execute(delete(InvitationToken).where(InvitationToken.id == invitation_id))

    @staticmethod
    async def delete_expired_invitations(db: AsyncSession, now: datetime) -> int:
        """
        Delete every invitation that expired before `now`.

        Returns:
            Number of invitations deleted
        """
        result = await db.execute(delete(InvitationToken).where(InvitationToken.expires_at < now))
        return result.rowcount

"""
Auth Repository

Database operations for student email verification tokens.
"""

from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import VerificationToken


async def create_token(
    db: AsyncSession,
    user_id: int,
    token_hash: str,
    expires_at: datetime,
) -> VerificationToken:
    """Store a hashed verification token. Does not commit."""
    new_token = VerificationToken(
        user_id=user_id,
        token=token_hash,
        expires_at=expires_at,
    )

    db.add(new_token)
    await db.flush()

    return new_token


async def get_by_token(db: AsyncSession, token_hash: str) -> VerificationToken | None:
    """Get verification token by its hash."""
    result = await db.execute(
        select(VerificationToken).where(VerificationToken.token == token_hash)
    )
    return result.scalar_one_or_none()


async def delete_token(db: AsyncSession, token_id: int) -> None:
    """Delete a single token. Does not commit."""
    await db.execute(delete(VerificationToken).where(VerificationToken.id == token_id))


async def delete_expired(db: AsyncSession, now: datetime) -> int:
    """
    Delete every token that expired before `now`. Does not commit.

    Returns:
        Number of tokens deleted
    """
    result = await db.execute(delete(VerificationToken).where(VerificationToken.expires_at < now))
    return result.rowcount

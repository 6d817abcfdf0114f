"""
Degrees Repository

Database operations for degree records. Every lookup that starts from an
admin-supplied id is scoped to the caller's university, so a record owned
by another university is indistinguishable from a missing one.

Batch status updates do not commit: the service checks the affected row
count and commits or rolls back the whole batch.
"""

import logging
from collections.abc import Sequence
from typing import Any

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from diploma_api.modules.degrees.models import Degree, DegreeStatus

logger = logging.getLogger(__name__)


async def create(db: AsyncSession, data: dict[str, Any]) -> Degree:
    """Create a single degree record."""
    degree = Degree(**data)

    db.add(degree)
    await db.commit()
    await db.refresh(degree)

    return degree


async def bulk_create(db: AsyncSession, rows: Sequence[dict[str, Any]]) -> int:
    """
    Insert every staged record in one unit of work.

    Returns:
        Number of records inserted
    """
    db.add_all([Degree(**row) for row in rows])
    await db.commit()

    return len(rows)


async def get_by_id(db: AsyncSession, degree_id: int, university_id: int) -> Degree | None:
    """Get a degree by id, only if it belongs to the given university."""
    result = await db.execute(
        select(Degree).where(
            Degree.id == degree_id,
            Degree.university_id == university_id,
        )
    )
    return result.scalar_one_or_none()


async def get_many(
    db: AsyncSession,
    degree_ids: Sequence[int],
    university_id: int,
) -> list[Degree]:
    """Get every degree in `degree_ids` that belongs to the given university."""
    if not degree_ids:
        return []

    result = await db.execute(
        select(Degree)
        .where(
            Degree.id.in_(degree_ids),
            Degree.university_id == university_id,
        )
        .order_by(Degree.id)
    )
    return list(result.scalars().all())


async def list_by_university(
    db: AsyncSession,
    university_id: int,
    status: DegreeStatus | None = None,
    search: str | None = None,
) -> list[Degree]:
    """
    List a university's degrees, newest first.

    Args:
        db: Database session
        university_id: Owning university
        status: Only return records in this status
        search: Case-insensitive substring match on email, major or degree type
    """
    stmt = select(Degree).where(Degree.university_id == university_id)

    if status is not None:
        stmt = stmt.where(Degree.status == status)

    if search:
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(
            or_(
                Degree.student_email.ilike(pattern),
                Degree.major.ilike(pattern),
                Degree.degree_type.ilike(pattern),
            )
        )

    result = await db.execute(stmt.order_by(Degree.created_at.desc(), Degree.id.desc()))
    return list(result.scalars().all())


async def update(db: AsyncSession, degree: Degree, fields: dict[str, Any]) -> Degree:
    """Apply field changes to a degree and persist them."""
    for key, value in fields.items():
        if hasattr(degree, key):
            setattr(degree, key, value)

    await db.commit()
    await db.refresh(degree)

    return degree


async def delete_degree(db: AsyncSession, degree: Degree) -> None:
    """Delete a degree record."""
    await db.execute(delete(Degree).where(Degree.id == degree.id))
    await db.commit()


async def update_status_many(
    db: AsyncSession,
    degree_ids: Sequence[int],
    university_id: int,
    expected: DegreeStatus,
    target: DegreeStatus,
) -> int:
    """
    Move every listed degree from `expected` to `target` in one statement.

    Rows that are no longer in `expected` are left alone, so the returned
    count is lower than len(degree_ids) if another request got there
    first. Does not commit.

    Returns:
        Number of rows updated
    """
    result = await db.execute(
        update(Degree)
        .where(
            Degree.id.in_(degree_ids),
            Degree.university_id == university_id,
            Degree.status == expected,
        )
        .values(status=target)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


# ============================================
# Linking & Student Lookups
# ============================================


async def find_linkable(db: AsyncSession, email: str, university_id: int) -> Degree | None:
    """
    Find the unlinked submitted degree a newly verified student should own.

    When several match, the earliest created wins (ties broken by id).
    """
    result = await db.execute(
        select(Degree)
        .options(selectinload(Degree.university))
        .where(
            Degree.student_email == email,
            Degree.university_id == university_id,
            Degree.status == DegreeStatus.SUBMITTED,
            Degree.student_owner_id.is_(None),
        )
        .order_by(Degree.created_at.asc(), Degree.id.asc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def link_to_owner(db: AsyncSession, degree: Degree, owner_id: int) -> bool:
    """
    Bind a submitted degree to a student account.

    The update only matches while the record is still submitted and has no
    owner, so an owner is never overwritten.

    Returns:
        True if the record was linked by this call
    """
    result = await db.execute(
        update(Degree)
        .where(
            Degree.id == degree.id,
            Degree.status == DegreeStatus.SUBMITTED,
            Degree.student_owner_id.is_(None),
        )
        .values(student_owner_id=owner_id, status=DegreeStatus.LINKED)
        .execution_options(synchronize_session=False)
    )
    await db.commit()

    if result.rowcount != 1:
        return False

    await db.refresh(degree, attribute_names=["status", "student_owner_id", "updated_at"])
    return True


async def list_claimable(db: AsyncSession, university_id: int, email: str) -> list[Degree]:
    """Submitted, unlinked degrees at a university recorded for this email."""
    result = await db.execute(
        select(Degree)
        .options(selectinload(Degree.university))
        .where(
            Degree.university_id == university_id,
            Degree.student_email == email,
            Degree.status == DegreeStatus.SUBMITTED,
            Degree.student_owner_id.is_(None),
        )
        .order_by(Degree.created_at.asc(), Degree.id.asc())
    )
    return list(result.scalars().all())


async def list_by_owner(db: AsyncSession, owner_id: int) -> list[Degree]:
    """Degrees linked to a student account."""
    result = await db.execute(
        select(Degree)
        .options(selectinload(Degree.university))
        .where(
            Degree.student_owner_id == owner_id,
            Degree.status == DegreeStatus.LINKED,
        )
        .order_by(Degree.graduation_date.desc(), Degree.id.desc())
    )
    return list(result.scalars().all())

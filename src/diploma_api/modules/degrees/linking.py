"""
Deferred Degree Linking

Degrees are uploaded against an email address long before the student has
an account. Once a student proves they own that address, the matching
submitted degree is bound to their account.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from diploma_api.core.email import send_degree_linked
from diploma_api.modules.degrees import repository
from diploma_api.modules.degrees.models import Degree
from diploma_api.modules.degrees.transitions import LINK, next_status
from diploma_api.modules.degrees.validation import normalize_email

logger = logging.getLogger(__name__)


async def resolve_linking(
    db: AsyncSession,
    verified_email: str,
    university_id: int,
    owner_id: int,
    notify: bool = True,
) -> Degree | None:
    """
    Link the student's submitted degree to their account, if one exists.

    Looks for an unlinked submitted degree at the student's university whose
    student_email matches (case-insensitively). If several match, the
    earliest created is linked.

    Finding nothing is the common case (students usually register before
    their degree is uploaded) and is not an error. Calling this again after
    a successful link returns None.

    Args:
        db: Database session
        verified_email: Email the student just verified
        university_id: The student's university
        owner_id: The student's user id
        notify: Send the "degree linked" email on success

    Returns:
        The linked degree, or None if nothing was linked
    """
    email = normalize_email(verified_email)

    degree = await repository.find_linkable(db, email, university_id)
    if degree is None:
        logger.debug(f"No linkable degree for user {owner_id} at university {university_id}")
        return None

    next_status(degree.status, LINK.target)

    linked = await repository.link_to_owner(db, degree, owner_id)
    if not linked:
        # Another request linked it between the lookup and the update
        logger.warning(f"Degree {degree.id} was linked concurrently, skipping")
        return None

    logger.info(f"Linked degree {degree.id} to user {owner_id}")

    if notify:
        university_name = degree.university.name if degree.university else "your university"
        sent = await send_degree_linked(
            to_email=email,
            university_name=university_name,
            degree_type=degree.degree_type,
            major=degree.major,
        )
        if not sent:
            logger.warning(f"Failed to send degree linked email for degree {degree.id}")

    return degree

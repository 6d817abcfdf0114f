"""
Auth Background Jobs

Hourly purge of expired verification and invitation tokens. Tokens are
deleted on first use; this job removes the ones that were never used.

The job is idempotent and can be triggered manually via
/api/v1/admin/jobs/{job_id}/trigger.
"""

import logging
from datetime import UTC, datetime
from typing import Any

from apscheduler.triggers.interval import IntervalTrigger

from diploma_api.core.database import async_session_maker
from diploma_api.core.scheduler import register_job
from diploma_api.modules.auth import repository
from diploma_api.modules.universities.repository import UniversityRepository

logger = logging.getLogger(__name__)

JOB_ID_PURGE_EXPIRED_TOKENS = "auth_purge_expired_tokens"


async def purge_expired_tokens() -> dict[str, Any]:
    """
    Delete every expired verification and invitation token.

    Returns:
        Counts of deleted tokens by kind
    """
    now = datetime.now(UTC)
    logger.info(f"Starting expired token purge at {now.isoformat()}")

    async with async_session_maker() as db:
        verification_deleted = await repository.delete_expired(db, now)
        invitations_deleted = await UniversityRepository.delete_expired_invitations(db, now)
        await db.commit()

    summary = {
        "verification_tokens_deleted": verification_deleted,
        "invitation_tokens_deleted": invitations_deleted,
    }
    logger.info(f"Expired token purge completed: {summary}")
    return summary


def register_auth_jobs() -> None:
    """Register auth jobs with the scheduler. Call before start_scheduler()."""
    register_job(
        job_id=JOB_ID_PURGE_EXPIRED_TOKENS,
        func=purge_expired_tokens,
        trigger=IntervalTrigger(hours=1),
    )
    logger.info(f"Registered job: {JOB_ID_PURGE_EXPIRED_TOKENS}")

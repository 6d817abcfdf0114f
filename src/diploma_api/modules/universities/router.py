"""
Universities Router

Endpoints:
- POST /universities - Register a university (platform admin)
- GET /universities/verified - Verified universities with admin info (platform admin)
- POST /universities/invite-admin - Invite a university admin (platform admin)
- GET /universities - Public list of verified universities
"""

import logging
from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from diploma_api.core.auth import AuthContext, require_platform_admin
from diploma_api.core.database import get_db
from diploma_api.core.rate_limit import rate_limit
from diploma_api.modules.universities import service
from diploma_api.modules.universities.schemas import (
    InviteAdminRequest,
    InviteAdminResponse,
    PublicUniversityListResponse,
    PublicUniversityResponse,
    UniversityCreate,
    UniversityResponse,
    VerifiedUniversityListResponse,
    VerifiedUniversityResponse,
)
from diploma_api.modules.universities.service import UniversityServiceError

logger = logging.getLogger(__name__)

router = APIRouter()


def _handle_service_error(e: UniversityServiceError) -> NoReturn:
    """Convert service errors to HTTPExceptions."""
    raise HTTPException(
        status_code=e.status_code,
        detail={
            "error": e.error_code,
            "message": e.message,
        },
    ) from e


def _internal_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={
            "error": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )


@router.post(
    "",
    response_model=UniversityResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register University",
    description="""
Register a university. The domain is stored as `@host`, lower-cased; a
missing leading `@` is added. Universities registered here are verified
immediately.

**Access:** Platform admin only
""",
)
async def register_university(
    data: UniversityCreate,
    admin: AuthContext = Depends(require_platform_admin),
    db: AsyncSession = Depends(get_db),
) -> UniversityResponse:
    try:
        university = await service.register_university(
            db,
            name=data.name,
            domain=data.domain,
            accreditation_details=data.accreditation_details,
        )
    except UniversityServiceError as e:
        logger.warning(f"University registration rejected: {e.message}")
        _handle_service_error(e)
    except Exception as e:
        logger.exception(f"Error registering university: {e}")
        raise _internal_error() from e

    logger.info(f"Admin {admin.user_id} registered university {university.id}")
    return UniversityResponse.model_validate(university)


@router.get(
    "/verified",
    response_model=VerifiedUniversityListResponse,
    summary="List Verified Universities",
)
async def list_verified_universities(
    _admin: AuthContext = Depends(require_platform_admin),
    db: AsyncSession = Depends(get_db),
) -> VerifiedUniversityListResponse:
    """Verified universities, with whether an admin has registered for each."""
    try:
        entries = await service.list_verified_universities(db)
    except Exception as e:
        logger.exception(f"Error listing verified universities: {e}")
        raise _internal_error() from e

    universities = []
    for entry in entries:
        item = VerifiedUniversityResponse.model_validate(entry.university)
        if entry.admin is not None:
            item.admin_assigned = True
            item.admin_email = entry.admin.email
            item.admin_assigned_at = entry.admin.created_at
        universities.append(item)

    return VerifiedUniversityListResponse(universities=universities)


@router.post(
    "/invite-admin",
    response_model=InviteAdminResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Invite University Admin",
)
@rate_limit(limit=20, window_seconds=3600)
async def invite_university_admin(
    request: Request,
    data: InviteAdminRequest,
    admin: AuthContext = Depends(require_platform_admin),
    db: AsyncSession = Depends(get_db),
) -> InviteAdminResponse:
    """Email a single-use registration link to a new university admin."""
    try:
        invitation = await service.invite_university_admin(db, data.email, data.university_id)
    except UniversityServiceError as e:
        logger.warning(f"Invitation rejected: {e.message}")
        _handle_service_error(e)
    except Exception as e:
        logger.exception(f"Error inviting university admin: {e}")
        raise _internal_error() from e

    logger.info(f"Admin {admin.user_id} sent invitation {invitation.id}")
    return InviteAdminResponse(
        message="Invitation sent",
        email=invitation.email,
        university_id=invitation.university_id,
        expires_at=invitation.expires_at,
    )


@router.get(
    "",
    response_model=PublicUniversityListResponse,
    summary="List Universities",
)
async def list_universities(
    db: AsyncSession = Depends(get_db),
) -> PublicUniversityListResponse:
    """Public list of verified universities for the student registration form."""
    try:
        universities = await service.list_universities(db)
    except Exception as e:
        logger.exception(f"Error listing universities: {e}")
        raise _internal_error() from e

    return PublicUniversityListResponse(
        universities=[PublicUniversityResponse.model_validate(u) for u in universities]
    )

"""
Student Degrees Router

Endpoints for students viewing degrees issued to their email address.

Endpoints:
- GET /student/degrees/available-to-claim - Submitted degrees matching the student's email
- GET /student/degrees/my-degrees - Degrees linked to the student's account
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from diploma_api.core.auth import AuthContext, require_student
from diploma_api.core.database import get_db
from diploma_api.modules.degrees import service
from diploma_api.modules.degrees.models import Degree
from diploma_api.modules.degrees.schemas import StudentDegreeListResponse, StudentDegreeResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_student_view(degree: Degree) -> StudentDegreeResponse:
    return StudentDegreeResponse(
        id=degree.id,
        university_id=degree.university_id,
        university_name=degree.university.name if degree.university else None,
        student_email=degree.student_email,
        degree_type=degree.degree_type,
        major=degree.major,
        graduation_date=degree.graduation_date,
        status=degree.status,
        has_document=degree.file_path is not None,
    )


@router.get(
    "/available-to-claim",
    response_model=StudentDegreeListResponse,
    summary="Degrees Available to Claim",
)
async def available_to_claim(
    ctx: AuthContext = Depends(require_student),
    db: AsyncSession = Depends(get_db),
) -> StudentDegreeListResponse:
    """Submitted degrees at the student's university recorded for their email, not yet linked."""
    try:
        degrees = await service.list_claimable(db, ctx)
    except Exception as e:
        logger.exception(f"Error listing claimable degrees for user {ctx.user_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "INTERNAL_ERROR",
                "message": "An unexpected error occurred.",
            },
        ) from e

    return StudentDegreeListResponse(degrees=[_to_student_view(degree) for degree in degrees])


@router.get(
    "/my-degrees",
    response_model=StudentDegreeListResponse,
    summary="My Degrees",
)
async def my_degrees(
    ctx: AuthContext = Depends(require_student),
    db: AsyncSession = Depends(get_db),
) -> StudentDegreeListResponse:
    """Degrees linked to the authenticated student's account."""
    try:
        degrees = await service.list_linked_for_student(db, ctx)
    except Exception as e:
        logger.exception(f"Error listing degrees for user {ctx.user_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "INTERNAL_ERROR",
                "message": "An unexpected error occurred.",
            },
        ) from e

    return StudentDegreeListResponse(degrees=[_to_student_view(degree) for degree in degrees])

"""
Authentication Router

Endpoints:
- POST /auth/login - Log in (all roles)
- POST /auth/register - Student registration
- POST /auth/confirm-email - Confirm a student's email (links their degree)
- POST /auth/register-university-admin - Accept a university admin invitation
"""

import logging
from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from diploma_api.core.database import get_db
from diploma_api.core.rate_limit import rate_limit
from diploma_api.modules.auth import service
from diploma_api.modules.auth.schemas import (
    ConfirmEmailRequest,
    ConfirmEmailResponse,
    LoginRequest,
    LoginResponse,
    StudentRegisterRequest,
    StudentRegisterResponse,
    UniversityAdminRegisterRequest,
    UserResponse,
)
from diploma_api.modules.auth.service import AuthServiceError

logger = logging.getLogger(__name__)

router = APIRouter()


def _handle_service_error(e: AuthServiceError) -> NoReturn:
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
            "message": "An unexpected error occurred. Please try again later.",
        },
    )


@router.post("/login", response_model=LoginResponse)
@rate_limit(limit=10, window_seconds=60)
async def login(
    request: Request,
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> LoginResponse:
    """
    Authenticate user and return JWT tokens.

    Raises:
        HTTPException 401: Invalid credentials
        HTTPException 403: Account inactive or email unverified
    """
    try:
        user, tokens = await service.login(db, credentials.email, credentials.password)
    except AuthServiceError as e:
        _handle_service_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error during login: {e}")
        raise _internal_error() from e

    return LoginResponse(
        access_token=tokens["access_token"],
        refresh_token=tokens["refresh_token"],
        user=UserResponse.model_validate(user),
    )


@router.post(
    "/register",
    response_model=StudentRegisterResponse,
    status_code=status.HTTP_201_CREATED,
)
@rate_limit(limit=5, window_seconds=3600)
async def register_student(
    request: Request,
    data: StudentRegisterRequest,
    db: AsyncSession = Depends(get_db),
) -> StudentRegisterResponse:
    """
    Register a student account. The email must belong to the chosen
    university's domain. A verification link is emailed.
    """
    try:
        user = await service.register_student(db, data.email, data.password, data.university_id)
    except AuthServiceError as e:
        logger.warning(f"Student registration rejected: {e.error_code}")
        _handle_service_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error during registration: {e}")
        raise _internal_error() from e

    return StudentRegisterResponse(
        id=user.id,
        email=user.email,
        message="Registration successful. Please check your email to verify your account.",
    )


@router.post("/confirm-email", response_model=ConfirmEmailResponse)
async def confirm_email(
    data: ConfirmEmailRequest,
    db: AsyncSession = Depends(get_db),
) -> ConfirmEmailResponse:
    """
    Confirm a student's email with the token from the verification email.
    Any submitted degree issued to that email is linked to the account.
    """
    try:
        _user, linked = await service.confirm_email(db, data.token)
    except AuthServiceError as e:
        _handle_service_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error confirming email: {e}")
        raise _internal_error() from e

    if linked is not None:
        return ConfirmEmailResponse(
            message="Email verified. Your degree has been linked to your account.",
            linked_degree_id=linked.id,
        )
    return ConfirmEmailResponse(message="Email verified. You can now log in.")


@router.post(
    "/register-university-admin",
    response_model=LoginResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register_university_admin(
    data: UniversityAdminRegisterRequest,
    db: AsyncSession = Depends(get_db),
) -> LoginResponse:
    """Create a university admin account from an invitation token."""
    try:
        user, tokens = await service.register_university_admin(db, data.token, data.password)
    except AuthServiceError as e:
        _handle_service_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error registering university admin: {e}")
        raise _internal_error() from e

    return LoginResponse(
        access_token=tokens["access_token"],
        refresh_token=tokens["refresh_token"],
        user=UserResponse.model_validate(user),
    )

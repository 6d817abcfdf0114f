"""
Auth Service Layer

Account flows:

1. Login for every role (students must have verified their email)
2. Student registration:
   - The university must exist and be verified
   - The email must belong to the university's domain
   - A single-use verification token is emailed
3. Email confirmation:
   - Marks the student verified, deletes the token, then links any
     submitted degree recorded for that email
4. University admin registration from a platform-admin invitation

Tokens use secrets.token_urlsafe and are SHA-256 hashed before storage.
Plain tokens are never logged.
"""

import logging
from datetime import UTC, datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from diploma_api.core.auth import issue_tokens
from diploma_api.core.config import settings
from diploma_api.core.email import send_student_verification
from diploma_api.core.security import generate_secure_token, hash_password, hash_token, verify_password
from diploma_api.modules.auth import repository
from diploma_api.modules.degrees import service as degrees_service
from diploma_api.modules.degrees.models import Degree
from diploma_api.modules.degrees.validation import normalize_email, validate_domain_match
from diploma_api.modules.universities.repository import UniversityRepository
from diploma_api.modules.users.models import User, UserRole
from diploma_api.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)


class AuthServiceError(Exception):
    """Base exception for auth service errors."""

    def __init__(self, message: str, error_code: str, status_code: int = 400):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


class InvalidCredentialsError(AuthServiceError):
    def __init__(self):
        super().__init__(
            message="Invalid email or password.",
            error_code="INVALID_CREDENTIALS",
            status_code=401,
        )


class AccountInactiveError(AuthServiceError):
    def __init__(self):
        super().__init__(
            message="Your account has been deactivated.",
            error_code="ACCOUNT_INACTIVE",
            status_code=403,
        )


class EmailNotVerifiedError(AuthServiceError):
    def __init__(self):
        super().__init__(
            message="Please verify your email before logging in.",
            error_code="EMAIL_NOT_VERIFIED",
            status_code=403,
        )


class UniversityUnavailableError(AuthServiceError):
    """Raised when registering against a missing or unverified university."""

    def __init__(self, university_id: int):
        super().__init__(
            message=f"University {university_id} not found or not verified",
            error_code="UNIVERSITY_NOT_FOUND",
            status_code=404,
        )


class DomainMismatchError(AuthServiceError):
    def __init__(self, university_domain: str):
        super().__init__(
            message=f"Email must use the university domain {university_domain}",
            error_code="DOMAIN_MISMATCH",
            status_code=400,
        )


class EmailAlreadyRegisteredError(AuthServiceError):
    def __init__(self):
        super().__init__(
            message="An account with this email already exists.",
            error_code="EMAIL_ALREADY_REGISTERED",
            status_code=409,
        )


class InvalidTokenError(AuthServiceError):
    def __init__(self, message: str = "Invalid or already used link."):
        super().__init__(
            message=message,
            error_code="INVALID_TOKEN",
            status_code=400,
        )


class TokenExpiredError(AuthServiceError):
    def __init__(self):
        super().__init__(
            message="This link has expired.",
            error_code="TOKEN_EXPIRED",
            status_code=400,
        )


def _is_expired(expires_at: datetime) -> bool:
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=UTC)
    return expires_at < datetime.now(UTC)


async def login(db: AsyncSession, email: str, password: str) -> tuple[User, dict[str, str]]:
    """
    Authenticate a user.

    Returns:
        The user and their access/refresh tokens

    Raises:
        InvalidCredentialsError: Unknown email or wrong password
        AccountInactiveError: Account deactivated
        EmailNotVerifiedError: Student hasn't confirmed their email
    """
    user = await UserRepository.get_by_email(db, email)

    if user is None or not verify_password(password, user.password_hash):
        logger.warning("Failed login attempt")
        raise InvalidCredentialsError()

    if not user.is_active:
        logger.warning(f"Login attempt for inactive account {user.id}")
        raise AccountInactiveError()

    if user.role == UserRole.STUDENT and not user.is_verified:
        raise EmailNotVerifiedError()

    logger.info(f"User logged in: {user.id} (role: {user.role.value})")
    return user, issue_tokens(user)


async def register_student(
    db: AsyncSession,
    email: str,
    password: str,
    university_id: int,
) -> User:
    """
    Register an unverified student and email a verification link.

    Raises:
        UniversityUnavailableError: University missing or not verified
        DomainMismatchError: Email outside the university's domain
        EmailAlreadyRegisteredError: Email already has an account
    """
    email = normalize_email(email)

    university = await UniversityRepository.get_by_id(db, university_id)
    if university is None or not university.is_verified:
        raise UniversityUnavailableError(university_id)

    if not validate_domain_match(email, university.domain):
        raise DomainMismatchError(university.domain)

    if await UserRepository.email_exists(db, email):
        raise EmailAlreadyRegisteredError()

    user = await UserRepository.create(
        db,
        email=email,
        password_hash=hash_password(password),
        role=UserRole.STUDENT,
        university_id=university.id,
        is_verified=False,
    )

    plain_token = generate_secure_token()
    await repository.create_token(
        db,
        user_id=user.id,
        token_hash=hash_token(plain_token),
        expires_at=datetime.now(UTC) + timedelta(hours=settings.verification_token_expiry_hours),
    )
    await db.commit()

    sent = await send_student_verification(
        to_email=email,
        university_name=university.name,
        token=plain_token,
    )
    if not sent:
        logger.warning(f"Failed to send verification email to user {user.id}")

    logger.info(f"Student {user.id} registered with university {university.id}")
    return user


async def confirm_email(db: AsyncSession, token: str) -> tuple[User, Degree | None]:
    """
    Verify a student's email and link their submitted degree, if any.

    Returns:
        The verified user and the degree that was linked (or None)

    Raises:
        InvalidTokenError: Unknown or already used token
        TokenExpiredError: Token past its expiry (it is deleted)
    """
    verification_token = await repository.get_by_token(db, hash_token(token))
    if verification_token is None:
        raise InvalidTokenError()

    if _is_expired(verification_token.expires_at):
        await repository.delete_token(db, verification_token.id)
        await db.commit()
        raise TokenExpiredError()

    user = await UserRepository.get_by_id(db, verification_token.user_id)
    if user is None:
        raise InvalidTokenError()

    await UserRepository.mark_verified(db, user)
    await repository.delete_token(db, verification_token.id)
    await db.commit()

    logger.info(f"Email verified for user {user.id}")

    linked = None
    if user.role == UserRole.STUDENT and user.university_id is not None:
        try:
            linked = await degrees_service.resolve_linking_on_verify(
                db, user.email, user.university_id, user.id
            )
        except SQLAlchemyError as e:
            # The verification itself is committed; linking can be retried by support
            await db.rollback()
            logger.exception(f"Degree linking failed for user {user.id}: {e}")

    return user, linked


async def register_university_admin(
    db: AsyncSession,
    token: str,
    password: str,
) -> tuple[User, dict[str, str]]:
    """
    Create a university admin account from an invitation.

    Returns:
        The new admin and their access/refresh tokens

    Raises:
        InvalidTokenError: Unknown or already used invitation
        TokenExpiredError: Invitation past its expiry (it is deleted)
        EmailAlreadyRegisteredError: The invited email already has an account
    """
    invitation = await UniversityRepository.get_invitation(db, hash_token(token))
    if invitation is None:
        raise InvalidTokenError("Invalid or already used invitation.")

    if _is_expired(invitation.expires_at):
        await UniversityRepository.delete_invitation(db, invitation.id)
        await db.commit()
        raise TokenExpiredError()

    if await UserRepository.email_exists(db, invitation.email):
        raise EmailAlreadyRegisteredError()

    user = await UserRepository.create(
        db,
        email=invitation.email,
        password_hash=hash_password(password),
        role=UserRole.UNIVERSITY_ADMIN,
        university_id=invitation.university_id,
        is_verified=True,
    )
    await UniversityRepository.delete_invitation(db, invitation.id)
    await db.commit()

    logger.info(f"University admin {user.id} registered for university {user.university_id}")
    return user, issue_tokens(user)

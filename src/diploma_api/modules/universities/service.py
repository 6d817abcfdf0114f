"""
Universities Service Layer

Platform-admin onboarding of universities:

1. Registration:
   - Unique name and canonical "@host" domain
   - Universities registered by a platform admin are verified immediately

2. Admin invitations:
   - Only verified universities can receive an admin
   - Invitation tokens are single-use, SHA-256 hashed, valid for
     settings.invitation_token_expiry_hours
   - An email failure is logged; the invitation still exists
"""

import logging
import re
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from diploma_api.core.config import settings
from diploma_api.core.email import send_university_admin_invitation
from diploma_api.core.security import generate_secure_token, hash_token
from diploma_api.modules.degrees.validation import normalize_domain, normalize_email
from diploma_api.modules.universities.models import InvitationToken, University
from diploma_api.modules.universities.repository import UniversityRepository
from diploma_api.modules.users.models import User
from diploma_api.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

# "@" + at least two dot-separated labels, no scheme, path or "www."
DOMAIN_PATTERN = re.compile(r"^@(?!www\.)[a-z0-9](?:[a-z0-9-]*[a-z0-9])?(?:\.[a-z0-9](?:[a-z0-9-]*[a-z0-9])?)+$")


class UniversityServiceError(Exception):
    """Base exception for university service errors."""

    def __init__(self, message: str, error_code: str, status_code: int = 400):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


class UniversityExistsError(UniversityServiceError):
    """Raised when a university name or domain is already registered."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="UNIVERSITY_EXISTS",
            status_code=409,
        )


class InvalidDomainError(UniversityServiceError):
    """Raised when a university domain is not a bare email host."""

    def __init__(self, domain: str):
        super().__init__(
            message=f"Invalid domain '{domain}'. Use the email domain, e.g. @foo.edu",
            error_code="INVALID_DOMAIN",
            status_code=400,
        )


class UniversityNotFoundError(UniversityServiceError):
    """Raised when a university is not found."""

    def __init__(self, university_id: int):
        super().__init__(
            message=f"University {university_id} not found",
            error_code="UNIVERSITY_NOT_FOUND",
            status_code=404,
        )


class UniversityNotVerifiedError(UniversityServiceError):
    """Raised when an operation requires a verified university."""

    def __init__(self, university_id: int):
        super().__init__(
            message=f"University {university_id} is not verified",
            error_code="UNIVERSITY_NOT_VERIFIED",
            status_code=400,
        )


class EmailAlreadyRegisteredError(UniversityServiceError):
    """Raised when inviting an email that already has an account."""

    def __init__(self):
        super().__init__(
            message="An account with this email already exists.",
            error_code="EMAIL_ALREADY_REGISTERED",
            status_code=409,
        )


@dataclass
class VerifiedUniversity:
    university: University
    admin: User | None


def canonical_domain(domain: str) -> str:
    """
    Normalise a university domain to "@host" form.

    Raises:
        InvalidDomainError: If the value is a URL or not a plain host
    """
    normalized = normalize_domain(domain)
    if not DOMAIN_PATTERN.match(normalized):
        raise InvalidDomainError(domain)
    return normalized


async def register_university(
    db: AsyncSession,
    name: str,
    domain: str,
    accreditation_details: str | None = None,
) -> University:
    """
    Register a university. Platform-admin registrations are verified at once.

    Raises:
        InvalidDomainError: If the domain is malformed
        UniversityExistsError: If the name or domain is taken
    """
    name = name.strip()
    normalized_domain = canonical_domain(domain)

    if await UniversityRepository.get_by_name(db, name):
        raise UniversityExistsError(f"A university named '{name}' already exists.")

    if await UniversityRepository.get_by_domain(db, normalized_domain):
        raise UniversityExistsError(f"The domain {normalized_domain} is already registered.")

    university = await UniversityRepository.create(
        db,
        name=name,
        domain=normalized_domain,
        accreditation_details=accreditation_details,
        is_verified=True,
    )
    await db.commit()

    logger.info(f"University registered: {university.id} - {university.name} ({university.domain})")
    return university


async def list_verified_universities(db: AsyncSession) -> list[VerifiedUniversity]:
    """Verified universities with their first registered admin, if any."""
    rows = await UniversityRepository.list_verified_with_admins(db)

    results: dict[int, VerifiedUniversity] = {}
    for university, admin in rows:
        if university.id not in results:
            results[university.id] = VerifiedUniversity(university=university, admin=admin)

    return list(results.values())


async def list_universities(db: AsyncSession) -> list[University]:
    """Verified universities students can register with."""
    return await UniversityRepository.list_verified(db)


async def invite_university_admin(
    db: AsyncSession,
    email: str,
    university_id: int,
) -> InvitationToken:
    """
    Create an admin invitation for a verified university and email it.

    Raises:
        UniversityNotFoundError: If the university doesn't exist
        UniversityNotVerifiedError: If it isn't verified
        EmailAlreadyRegisteredError: If the email already has an account
    """
    email = normalize_email(email)

    university = await UniversityRepository.get_by_id(db, university_id)
    if university is None:
        raise UniversityNotFoundError(university_id)
    if not university.is_verified:
        raise UniversityNotVerifiedError(university_id)

    if await UserRepository.email_exists(db, email):
        raise EmailAlreadyRegisteredError()

    plain_token = generate_secure_token()
    expires_at = datetime.now(UTC) + timedelta(hours=settings.invitation_token_expiry_hours)

    invitation = await UniversityRepository.create_invitation(
        db,
        university_id=university.id,
        email=email,
        token_hash=hash_token(plain_token),
        expires_at=expires_at,
    )
    await db.commit()

    logger.info(f"Invitation {invitation.id} created for university {university.id}")

    sent = await send_university_admin_invitation(
        to_email=email,
        university_name=university.name,
        token=plain_token,
    )
    if not sent:
        logger.warning(f"Failed to send invitation email for invitation {invitation.id}")

    return invitation

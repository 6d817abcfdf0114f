"""
Degrees Service Layer

Business logic for issuing degree records:

1. Upload:
   - Single records (optionally with a PDF credential document)
   - Bulk CSV uploads, accepted only when every row is valid

2. Draft management:
   - Update and delete, allowed only while a record is a draft

3. Two-step confirmation:
   - Step 1 moves drafts to pending_confirmation
   - Step 2 moves pending records to submitted
   - Revert moves pending records back to draft
   Every batch is checked in full before a single UPDATE is issued, and a
   batch with any record in the wrong status is rejected outright.

4. Student views:
   - Claimable (submitted, unlinked) records matching the student's email
   - Records already linked to the student's account

Every operation takes the caller's AuthContext. Lookups are scoped to the
caller's university, so a record owned by another university is reported
exactly like a missing one.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from diploma_api.core.auth import AuthContext
from diploma_api.core.config import settings
from diploma_api.core.storage import DocumentStorageError, delete_document, save_document
from diploma_api.modules.degrees import linking, repository
from diploma_api.modules.degrees.ingestion import RowError, TableParseError, ingest_rows, parse_table
from diploma_api.modules.degrees.models import Degree, DegreeStatus
from diploma_api.modules.degrees.transitions import (
    CONFIRMATION_STEPS,
    REVERT_CONFIRMATION,
    BatchPreconditionError,
    BatchTransition,
    can_edit,
    check_batch_transition,
)
from diploma_api.modules.degrees.validation import (
    REQUIRED_FIELDS,
    FieldError,
    normalize_email,
    parse_graduation_date,
    validate_degree_fields,
    validate_domain_match,
)
from diploma_api.modules.universities.models import University
from diploma_api.modules.universities.repository import UniversityRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DocumentUpload:
    """A credential document received with a single upload."""

    filename: str | None
    content: bytes


# ============================================
# Errors
# ============================================


class DegreeServiceError(Exception):
    """Base exception for degree service errors."""

    def __init__(self, message: str, error_code: str, status_code: int = 400):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


class ValidationError(DegreeServiceError):
    """Raised when submitted degree fields are missing or malformed."""

    def __init__(self, errors: list[FieldError], message: str | None = None):
        self.errors = errors
        super().__init__(
            message=message or "; ".join(error.message for error in errors),
            error_code="VALIDATION_ERROR",
            status_code=400,
        )


class DomainMismatchError(DegreeServiceError):
    """Raised when a student email does not belong to the university's domain."""

    def __init__(self, university_domain: str):
        self.university_domain = university_domain
        super().__init__(
            message=f"Student email must use the university domain {university_domain}",
            error_code="DOMAIN_MISMATCH",
            status_code=400,
        )


class StateConflictError(DegreeServiceError):
    """Raised when a record's status does not allow the requested operation."""

    def __init__(self, message: str, offending: dict[int, str] | None = None):
        self.offending = offending or {}
        super().__init__(
            message=message,
            error_code="STATE_CONFLICT",
            status_code=409,
        )


class NotFoundOrForeignError(DegreeServiceError):
    """Raised when a degree id is unknown or belongs to another university."""

    def __init__(self, degree_ids: Sequence[int] | None = None):
        self.degree_ids = list(degree_ids or [])
        if len(self.degree_ids) == 1:
            message = f"Degree {self.degree_ids[0]} not found"
        else:
            message = "Some degrees were not found or do not belong to your university"
        super().__init__(
            message=message,
            error_code="DEGREE_NOT_FOUND",
            status_code=404,
        )


class BulkUploadRejectedError(DegreeServiceError):
    """Raised when any row of a bulk upload is invalid; nothing is stored."""

    def __init__(self, row_errors: list[RowError]):
        self.row_errors = row_errors
        super().__init__(
            message=f"Upload rejected: {len(row_errors)} row(s) have errors. No degrees were created.",
            error_code="BULK_UPLOAD_REJECTED",
            status_code=400,
        )


class UniversityNotVerifiedError(DegreeServiceError):
    """Raised when the caller's university cannot issue degrees."""

    def __init__(self):
        super().__init__(
            message="Your university is not verified and cannot issue degrees.",
            error_code="UNIVERSITY_NOT_VERIFIED",
            status_code=403,
        )


# ============================================
# Helpers
# ============================================


async def _get_issuing_university(db: AsyncSession, ctx: AuthContext) -> University:
    """The caller's university, which must exist and be verified."""
    university = None
    if ctx.university_id is not None:
        university = await UniversityRepository.get_by_id(db, ctx.university_id)

    if university is None or not university.is_verified:
        logger.warning(f"User {ctx.user_id} tried to issue degrees without a verified university")
        raise UniversityNotVerifiedError()

    return university


async def _get_batch(db: AsyncSession, ctx: AuthContext, degree_ids: Sequence[int]) -> list[Degree]:
    """Load every requested degree or fail if any is missing or foreign."""
    unique_ids = list(dict.fromkeys(degree_ids))
    degrees = await repository.get_many(db, unique_ids, ctx.university_id)

    if len(degrees) != len(unique_ids):
        found = {degree.id for degree in degrees}
        missing = [degree_id for degree_id in unique_ids if degree_id not in found]
        logger.warning(
            f"Batch for university {ctx.university_id} references unknown degrees: {missing}"
        )
        raise NotFoundOrForeignError(missing)

    return degrees


def _is_provided(value: Any) -> bool:
    if value is None:
        return False
    return not (isinstance(value, str) and not value.strip())


# ============================================
# Upload
# ============================================


async def upload_single(
    db: AsyncSession,
    ctx: AuthContext,
    fields: Mapping[str, Any],
    document: DocumentUpload | None = None,
) -> Degree:
    """
    Create one draft degree.

    Raises:
        UniversityNotVerifiedError: If the caller's university can't issue degrees
        ValidationError: Listing every missing or malformed field
        DomainMismatchError: If the student email is outside the university domain
    """
    university = await _get_issuing_university(db, ctx)

    errors = validate_degree_fields(fields)
    if errors:
        raise ValidationError(errors)

    raw_email = str(fields["student_email"]).strip()
    if not validate_domain_match(raw_email, university.domain):
        raise DomainMismatchError(university.domain)

    file_path = None
    if document is not None:
        try:
            file_path = await save_document(document.filename, document.content)
        except DocumentStorageError as e:
            raise ValidationError([FieldError("file", str(e))]) from e

    data = {
        "university_id": university.id,
        "student_email": normalize_email(raw_email),
        "degree_type": str(fields["degree_type"]).strip(),
        "major": str(fields["major"]).strip(),
        "graduation_date": parse_graduation_date(fields["graduation_date"]),
        "status": DegreeStatus.DRAFT,
        "file_path": file_path,
    }

    try:
        degree = await repository.create(db, data)
    except Exception:
        # Don't leave an orphaned document behind
        await delete_document(file_path)
        raise

    logger.info(f"Degree {degree.id} uploaded by user {ctx.user_id} for university {university.id}")
    return degree


async def bulk_upload(db: AsyncSession, ctx: AuthContext, content: bytes) -> int:
    """
    Create draft degrees from a CSV upload.

    All or nothing: if any row is invalid no record is stored and every row
    error is reported.

    Returns:
        Number of degrees created

    Raises:
        ValidationError: If the file is too large, unreadable or has no rows
        BulkUploadRejectedError: Carrying every row error
    """
    university = await _get_issuing_university(db, ctx)

    if len(content) > settings.max_csv_bytes:
        raise ValidationError(
            [
                FieldError(
                    "file",
                    f"CSV file exceeds {settings.max_csv_bytes // (1024 * 1024)}MB limit",
                )
            ]
        )

    try:
        rows = parse_table(content)
    except TableParseError as e:
        raise ValidationError([FieldError("file", str(e))]) from e

    if not rows:
        raise ValidationError([FieldError("file", "CSV file contains no data rows")])

    result = ingest_rows(rows, university.id, university.domain)
    if result.errors:
        logger.warning(
            f"Bulk upload rejected for university {university.id}: "
            f"{len(result.errors)} of {len(rows)} rows invalid"
        )
        raise BulkUploadRejectedError(result.errors)

    created = await repository.bulk_create(db, [staged.as_dict() for staged in result.staged])

    logger.info(f"Bulk upload by user {ctx.user_id} created {created} draft degrees")
    return created


# ============================================
# Listing & Lookup
# ============================================


async def list_by_university(
    db: AsyncSession,
    ctx: AuthContext,
    status: DegreeStatus | None = None,
    search: str | None = None,
) -> list[Degree]:
    """The caller's university's degrees, newest first."""
    return await repository.list_by_university(db, ctx.university_id, status=status, search=search)


async def get_degree(db: AsyncSession, ctx: AuthContext, degree_id: int) -> Degree:
    """
    Get a single degree owned by the caller's university.

    Raises:
        NotFoundOrForeignError: If missing or owned by another university
    """
    degree = await repository.get_by_id(db, degree_id, ctx.university_id)
    if degree is None:
        raise NotFoundOrForeignError([degree_id])
    return degree


async def get_many(db: AsyncSession, ctx: AuthContext, degree_ids: Sequence[int]) -> list[Degree]:
    """
    Get several degrees at once; fails unless every id is found.

    Raises:
        NotFoundOrForeignError: If any id is missing or foreign
    """
    return await _get_batch(db, ctx, degree_ids)


# ============================================
# Draft Management
# ============================================


async def update_draft(
    db: AsyncSession,
    ctx: AuthContext,
    degree_id: int,
    fields: Mapping[str, Any],
) -> Degree:
    """
    Partially update a draft degree. Omitted or blank fields keep their value.

    Raises:
        NotFoundOrForeignError: If missing or owned by another university
        StateConflictError: If the degree is no longer a draft
        ValidationError: If the merged record is invalid
        DomainMismatchError: If a new email is outside the university domain
    """
    degree = await get_degree(db, ctx, degree_id)

    if not can_edit(degree.status):
        raise StateConflictError(
            f"Degree {degree.id} is {degree.status.value}; only draft degrees can be updated",
            offending={degree.id: degree.status.value},
        )

    changes = {
        field: fields[field]
        for field in REQUIRED_FIELDS
        if field in fields and _is_provided(fields[field])
    }
    if not changes:
        return degree

    merged = {field: changes.get(field, getattr(degree, field)) for field in REQUIRED_FIELDS}
    errors = validate_degree_fields(merged)
    if errors:
        raise ValidationError(errors)

    updates: dict[str, Any] = {}
    if "degree_type" in changes:
        updates["degree_type"] = str(changes["degree_type"]).strip()
    if "major" in changes:
        updates["major"] = str(changes["major"]).strip()
    if "graduation_date" in changes:
        updates["graduation_date"] = parse_graduation_date(changes["graduation_date"])
    if "student_email" in changes:
        university = await _get_issuing_university(db, ctx)
        raw_email = str(changes["student_email"]).strip()
        if not validate_domain_match(raw_email, university.domain):
            raise DomainMismatchError(university.domain)
        updates["student_email"] = normalize_email(raw_email)

    degree = await repository.update(db, degree, updates)

    logger.info(f"Degree {degree.id} updated by user {ctx.user_id}: {sorted(updates)}")
    return degree


async def delete_draft(db: AsyncSession, ctx: AuthContext, degree_id: int) -> None:
    """
    Delete a draft degree and its stored document.

    Raises:
        NotFoundOrForeignError: If missing or owned by another university
        StateConflictError: If the degree is no longer a draft
    """
    degree = await get_degree(db, ctx, degree_id)

    if not can_edit(degree.status):
        raise StateConflictError(
            f"Degree {degree.id} is {degree.status.value}; only draft degrees can be deleted",
            offending={degree.id: degree.status.value},
        )

    file_path = degree.file_path
    await repository.delete_degree(db, degree)

    try:
        await delete_document(file_path)
    except (OSError, DocumentStorageError) as e:
        logger.error(f"Failed to delete document for degree {degree_id}: {e}")

    logger.info(f"Degree {degree_id} deleted by user {ctx.user_id}")


# ============================================
# Confirmation
# ============================================


async def _apply_batch_transition(
    db: AsyncSession,
    ctx: AuthContext,
    degree_ids: Sequence[int],
    transition: BatchTransition,
) -> list[int]:
    """
    Check the whole batch, then move it in one UPDATE and commit.

    Raises:
        NotFoundOrForeignError: If any id is missing or foreign
        StateConflictError: If any record is not in the expected status
    """
    degrees = await _get_batch(db, ctx, degree_ids)
    ids = [degree.id for degree in degrees]

    try:
        check_batch_transition(degrees, transition.expected, transition.target)
    except BatchPreconditionError as e:
        raise StateConflictError(
            str(e),
            offending={id_: status.value for id_, status in e.offending.items()},
        ) from e

    updated = await repository.update_status_many(
        db, ids, ctx.university_id, transition.expected, transition.target
    )
    if updated != len(ids):
        await db.rollback()
        logger.warning(
            f"Batch {transition.expected.value} -> {transition.target.value} changed "
            f"concurrently: {updated} of {len(ids)} rows matched, rolled back"
        )
        raise StateConflictError(
            "Some degrees were modified by another request. Refresh and try again."
        )

    await db.commit()

    logger.info(
        f"User {ctx.user_id} moved {len(ids)} degrees "
        f"{transition.expected.value} -> {transition.target.value}"
    )
    return ids


async def confirm_batch(
    db: AsyncSession,
    ctx: AuthContext,
    degree_ids: Sequence[int],
    step: int,
) -> list[int]:
    """
    Run one step of the two-step confirmation over a batch.

    Step 1 requires every record to be draft, step 2 requires every record
    to be pending_confirmation.

    Returns:
        The ids that were moved
    """
    transition = CONFIRMATION_STEPS.get(step)
    if transition is None:
        raise ValidationError([FieldError("step", "step must be 1 or 2")])

    return await _apply_batch_transition(db, ctx, degree_ids, transition)


async def revert_batch(db: AsyncSession, ctx: AuthContext, degree_ids: Sequence[int]) -> list[int]:
    """Move a batch of pending_confirmation records back to draft."""
    return await _apply_batch_transition(db, ctx, degree_ids, REVERT_CONFIRMATION)


# ============================================
# Linking & Student Views
# ============================================


async def resolve_linking_on_verify(
    db: AsyncSession,
    email: str,
    university_id: int,
    owner_id: int,
) -> Degree | None:
    """Link a newly verified student's submitted degree, if there is one."""
    return await linking.resolve_linking(db, email, university_id, owner_id)


async def list_claimable(db: AsyncSession, ctx: AuthContext) -> list[Degree]:
    """Submitted, unlinked degrees at the student's university for their email."""
    return await repository.list_claimable(db, ctx.university_id, normalize_email(ctx.email))


async def list_linked_for_student(db: AsyncSession, ctx: AuthContext) -> list[Degree]:
    """Degrees already linked to the student's account."""
    return await repository.list_by_owner(db, ctx.user_id)

"""
Degrees Router

Endpoints for university admins managing their university's degree records.

Endpoints:
- POST /degrees/upload - Upload one degree (multipart, optional PDF)
- POST /degrees/bulk-upload - Upload a CSV of degrees (all or nothing)
- GET /degrees - List degrees, optionally filtered by status or search text
- GET /degrees/{id} - Get one degree
- POST /degrees/get-multiple - Get several degrees by id
- PUT /degrees/{id} - Update a draft degree
- DELETE /degrees/{id} - Delete a draft degree
- POST /degrees/confirm - Confirmation step 1 or 2 for a batch
- POST /degrees/revert-confirmation - Return a pending batch to draft

All endpoints require a university admin token.
"""

import logging
from collections.abc import Awaitable
from typing import Any, NoReturn, TypeVar

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from diploma_api.core.auth import AuthContext, require_university_admin
from diploma_api.core.database import get_db
from diploma_api.core.rate_limit import rate_limit
from diploma_api.modules.degrees import service
from diploma_api.modules.degrees.models import DegreeStatus
from diploma_api.modules.degrees.schemas import (
    BatchStatusResponse,
    BulkUploadResponse,
    ConfirmRequest,
    DegreeIdsRequest,
    DegreeListResponse,
    DegreeResponse,
    DegreeUpdate,
    DeleteDegreeResponse,
    RowErrorResponse,
)
from diploma_api.modules.degrees.service import (
    BulkUploadRejectedError,
    DegreeServiceError,
    DocumentUpload,
    NotFoundOrForeignError,
    StateConflictError,
    ValidationError,
)
from diploma_api.modules.degrees.transitions import CONFIRMATION_STEPS

logger = logging.getLogger(__name__)

router = APIRouter()

T = TypeVar("T")


def _handle_service_error(e: DegreeServiceError) -> NoReturn:
    """Convert service errors to HTTPExceptions."""
    detail: dict[str, Any] = {
        "error": e.error_code,
        "message": e.message,
    }
    if isinstance(e, ValidationError):
        detail["errors"] = [{"field": err.field, "message": err.message} for err in e.errors]
    elif isinstance(e, BulkUploadRejectedError):
        detail["row_errors"] = [
            RowErrorResponse.model_validate(err).model_dump() for err in e.row_errors
        ]
    elif isinstance(e, StateConflictError) and e.offending:
        detail["offending"] = {str(id_): value for id_, value in e.offending.items()}
    elif isinstance(e, NotFoundOrForeignError) and len(e.degree_ids) > 1:
        detail["degree_ids"] = e.degree_ids

    raise HTTPException(status_code=e.status_code, detail=detail) from e


async def _run(operation: Awaitable[T], action: str) -> T:
    """Await a service call, translating errors the same way for every endpoint."""
    try:
        return await operation
    except DegreeServiceError as e:
        logger.info(f"{action} rejected: {e.error_code} - {e.message}")
        _handle_service_error(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error while trying to {action}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "INTERNAL_ERROR",
                "message": "An unexpected error occurred. Please try again later.",
            },
        ) from e


@router.post(
    "/upload",
    response_model=DegreeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload Degree",
    description="""
Create a single draft degree. The student email must belong to the
university's domain. A PDF credential document may be attached.

Every invalid field is reported in `errors`.
""",
)
async def upload_degree(
    degree_type: str | None = Form(None, alias="degreeType"),
    major: str | None = Form(None),
    graduation_date: str | None = Form(None, alias="graduationDate"),
    student_email: str | None = Form(None, alias="studentEmail"),
    file: UploadFile | None = File(None),
    ctx: AuthContext = Depends(require_university_admin),
    db: AsyncSession = Depends(get_db),
) -> DegreeResponse:
    fields = {
        "degree_type": degree_type,
        "major": major,
        "graduation_date": graduation_date,
        "student_email": student_email,
    }

    document = None
    if file is not None and file.filename:
        document = DocumentUpload(filename=file.filename, content=await file.read())

    degree = await _run(service.upload_single(db, ctx, fields, document), "upload degree")
    return DegreeResponse.model_validate(degree)


@router.post(
    "/bulk-upload",
    response_model=BulkUploadResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Bulk Upload Degrees",
    description="""
Create draft degrees from a CSV file with the header
`degreeType,major,graduationDate,studentEmail`.

**All or nothing:** if any row is invalid, no degree is created and every
row error is returned in `row_errors` (rows are numbered from 1, header
excluded). Fix the file and upload it again.
""",
    responses={
        400: {
            "description": "Upload rejected",
            "content": {
                "application/json": {
                    "example": {
                        "detail": {
                            "error": "BULK_UPLOAD_REJECTED",
                            "message": "Upload rejected: 1 row(s) have errors. No degrees were created.",
                            "row_errors": [
                                {"row": 2, "field": "student_email", "reason": "duplicate in upload"}
                            ],
                        }
                    }
                }
            },
        },
    },
)
@rate_limit(limit=20, window_seconds=60)
async def bulk_upload_degrees(
    request: Request,
    file: UploadFile = File(...),
    ctx: AuthContext = Depends(require_university_admin),
    db: AsyncSession = Depends(get_db),
) -> BulkUploadResponse:
    content = await file.read()
    created = await _run(service.bulk_upload(db, ctx, content), "bulk upload degrees")
    return BulkUploadResponse(
        created_count=created,
        message=f"{created} degrees uploaded as drafts",
    )


@router.get(
    "",
    response_model=DegreeListResponse,
    summary="List Degrees",
)
async def list_degrees(
    status_filter: DegreeStatus | None = Query(None, alias="status"),
    search: str | None = Query(None, max_length=200),
    ctx: AuthContext = Depends(require_university_admin),
    db: AsyncSession = Depends(get_db),
) -> DegreeListResponse:
    """List the caller's university's degrees, newest first."""
    degrees = await _run(
        service.list_by_university(db, ctx, status=status_filter, search=search),
        "list degrees",
    )
    return DegreeListResponse(
        degrees=[DegreeResponse.model_validate(degree) for degree in degrees],
        total=len(degrees),
    )


@router.post(
    "/get-multiple",
    response_model=DegreeListResponse,
    summary="Get Multiple Degrees",
)
async def get_multiple_degrees(
    data: DegreeIdsRequest,
    ctx: AuthContext = Depends(require_university_admin),
    db: AsyncSession = Depends(get_db),
) -> DegreeListResponse:
    """Fetch a batch of degrees, typically to review them before confirming."""
    degrees = await _run(service.get_many(db, ctx, data.degree_ids), "get degrees")
    return DegreeListResponse(
        degrees=[DegreeResponse.model_validate(degree) for degree in degrees],
        total=len(degrees),
    )


@router.post(
    "/confirm",
    response_model=BatchStatusResponse,
    summary="Confirm Degrees",
    description="""
Two-step confirmation for a batch of degrees.

- `step: 1` - every degree must be `draft`; all move to `pending_confirmation`
- `step: 2` - every degree must be `pending_confirmation`; all move to `submitted`

If any degree is in the wrong status the whole request fails with
`STATE_CONFLICT` and nothing changes.
""",
)
async def confirm_degrees(
    data: ConfirmRequest,
    ctx: AuthContext = Depends(require_university_admin),
    db: AsyncSession = Depends(get_db),
) -> BatchStatusResponse:
    ids = await _run(
        service.confirm_batch(db, ctx, data.degree_ids, data.step),
        f"confirm degrees (step {data.step})",
    )
    new_status = CONFIRMATION_STEPS[data.step].target
    return BatchStatusResponse(
        degree_ids=ids,
        status=new_status,
        message=f"{len(ids)} degrees moved to {new_status.value}",
    )


@router.post(
    "/revert-confirmation",
    response_model=BatchStatusResponse,
    summary="Revert Confirmation",
)
async def revert_confirmation(
    data: DegreeIdsRequest,
    ctx: AuthContext = Depends(require_university_admin),
    db: AsyncSession = Depends(get_db),
) -> BatchStatusResponse:
    """Return a batch of pending_confirmation degrees to draft."""
    ids = await _run(service.revert_batch(db, ctx, data.degree_ids), "revert confirmation")
    return BatchStatusResponse(
        degree_ids=ids,
        status=DegreeStatus.DRAFT,
        message=f"{len(ids)} degrees returned to draft",
    )


@router.get(
    "/{degree_id}",
    response_model=DegreeResponse,
    summary="Get Degree",
)
async def get_degree(
    degree_id: int,
    ctx: AuthContext = Depends(require_university_admin),
    db: AsyncSession = Depends(get_db),
) -> DegreeResponse:
    degree = await _run(service.get_degree(db, ctx, degree_id), "get degree")
    return DegreeResponse.model_validate(degree)


@router.put(
    "/{degree_id}",
    response_model=DegreeResponse,
    summary="Update Draft Degree",
)
async def update_degree(
    degree_id: int,
    data: DegreeUpdate,
    ctx: AuthContext = Depends(require_university_admin),
    db: AsyncSession = Depends(get_db),
) -> DegreeResponse:
    """Update a draft degree. Omitted fields keep their current value."""
    degree = await _run(
        service.update_draft(db, ctx, degree_id, data.model_dump(exclude_unset=True)),
        "update degree",
    )
    return DegreeResponse.model_validate(degree)


@router.delete(
    "/{degree_id}",
    response_model=DeleteDegreeResponse,
    summary="Delete Draft Degree",
)
async def delete_degree(
    degree_id: int,
    ctx: AuthContext = Depends(require_university_admin),
    db: AsyncSession = Depends(get_db),
) -> DeleteDegreeResponse:
    await _run(service.delete_draft(db, ctx, degree_id), "delete degree")
    return DeleteDegreeResponse(id=degree_id)

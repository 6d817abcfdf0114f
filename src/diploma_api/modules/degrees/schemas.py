"""
Degrees Schemas

Pydantic schemas for request validation and response serialization.

Degree field values arrive as plain strings and are checked by
degrees.validation so every invalid field is reported at once.
"""

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from diploma_api.modules.degrees.models import DegreeStatus


class DegreeFields(BaseModel):
    """Degree attributes supplied by a university admin (camelCase or snake_case)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    degree_type: str | None = None
    major: str | None = None
    graduation_date: str | None = None
    student_email: str | None = None


class DegreeUpdate(DegreeFields):
    """Request body for PUT /degrees/{id}. Omitted fields keep their value."""


class DegreeIdsRequest(BaseModel):
    """Request body carrying a batch of degree ids."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    degree_ids: list[int] = Field(..., min_length=1, max_length=1000)


class ConfirmRequest(DegreeIdsRequest):
    """Request body for POST /degrees/confirm."""

    step: Literal[1, 2]


class DegreeResponse(BaseModel):
    """A degree record as seen by its university's admins."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    university_id: int
    student_owner_id: int | None
    student_email: str
    degree_type: str
    major: str
    graduation_date: date
    status: DegreeStatus
    file_path: str | None
    created_at: datetime
    updated_at: datetime


class DegreeListResponse(BaseModel):
    degrees: list[DegreeResponse]
    total: int


class RowErrorResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    row: int
    field: str | None = None
    reason: str


class BulkUploadResponse(BaseModel):
    """Response for a fully accepted bulk upload."""

    created_count: int
    message: str


class BatchStatusResponse(BaseModel):
    """Response for confirm / revert."""

    degree_ids: list[int]
    status: DegreeStatus
    message: str


class DeleteDegreeResponse(BaseModel):
    id: int
    message: str = "Degree deleted successfully"


class StudentDegreeResponse(BaseModel):
    """A degree as seen by the student it was issued to."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    university_id: int
    university_name: str | None = None
    student_email: str
    degree_type: str
    major: str
    graduation_date: date
    status: DegreeStatus
    has_document: bool = False


class StudentDegreeListResponse(BaseModel):
    degrees: list[StudentDegreeResponse]

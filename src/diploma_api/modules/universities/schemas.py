"""
Universities Schemas

Pydantic schemas for university onboarding.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class UniversityCreate(BaseModel):
    """Request body for POST /universities."""

    name: str = Field(..., min_length=1, max_length=200)
    domain: str = Field(..., min_length=3, max_length=255, examples=["@foo.edu"])
    accreditation_details: str | None = Field(None, max_length=5000)


class UniversityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    domain: str
    accreditation_details: str | None
    is_verified: bool
    created_at: datetime


class VerifiedUniversityResponse(UniversityResponse):
    """A verified university with its admin assignment."""

    admin_assigned: bool = False
    admin_email: str | None = None
    admin_assigned_at: datetime | None = None


class VerifiedUniversityListResponse(BaseModel):
    universities: list[VerifiedUniversityResponse]


class PublicUniversityResponse(BaseModel):
    """Minimal university info for the student registration form."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    domain: str


class PublicUniversityListResponse(BaseModel):
    universities: list[PublicUniversityResponse]


class InviteAdminRequest(BaseModel):
    """Request body for POST /universities/invite-admin."""

    email: EmailStr
    university_id: int


class InviteAdminResponse(BaseModel):
    message: str
    email: str
    university_id: int
    expires_at: datetime

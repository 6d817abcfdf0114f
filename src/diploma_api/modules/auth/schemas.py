"""Authentication schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from diploma_api.modules.users.models import UserRole

PASSWORD_MIN_LENGTH = 8


class LoginRequest(BaseModel):
    """Login request schema."""

    email: EmailStr
    password: str


class UserResponse(BaseModel):
    """User response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    role: UserRole
    university_id: int | None
    is_active: bool
    is_verified: bool
    created_at: datetime


class LoginResponse(BaseModel):
    """Login response schema."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserResponse


class StudentRegisterRequest(BaseModel):
    """Request body for POST /auth/register."""

    email: EmailStr
    password: str = Field(..., min_length=PASSWORD_MIN_LENGTH, max_length=128)
    university_id: int


class StudentRegisterResponse(BaseModel):
    id: int
    email: str
    message: str


class ConfirmEmailRequest(BaseModel):
    """Request body for POST /auth/confirm-email."""

    token: str = Field(..., min_length=1)


class ConfirmEmailResponse(BaseModel):
    message: str
    linked_degree_id: int | None = None


class UniversityAdminRegisterRequest(BaseModel):
    """Request body for POST /auth/register-university-admin."""

    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=PASSWORD_MIN_LENGTH, max_length=128)

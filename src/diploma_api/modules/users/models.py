"""
User Models

Accounts for platform admins, university admins and students.
"""

from enum import Enum

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import ENUM
from sqlalchemy.orm import Mapped, mapped_column

from diploma_api.modules.shared import BaseModel


class UserRole(str, Enum):
    """User roles in the system."""

    PLATFORM_ADMIN = "platform_admin"
    UNIVERSITY_ADMIN = "university_admin"
    STUDENT = "student"


class User(BaseModel):
    """
    User account.

    university_id is required for university admins and students and NULL
    for platform admins. Emails are stored lower-cased.
    """

    __tablename__ = "users"

    university_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("universities.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)

    role: Mapped[UserRole] = mapped_column(
        ENUM(UserRole, name="user_role", create_type=True),
        nullable=False,
        default=UserRole.STUDENT,
    )

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role.value})>"

"""
Degree Models

The degree record at the centre of the issuance workflow:

    draft -> pending_confirmation -> submitted -> linked
                     |
                     +-> draft (revert)

A record is created by a university admin, confirmed in two steps and
finally bound to a student account once that student verifies an email
matching `student_email`.
"""

import enum
from datetime import date

from sqlalchemy import Date, Enum, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from diploma_api.modules.shared import BaseModel
from diploma_api.modules.universities.models import University
from diploma_api.modules.users.models import User  # noqa: F401 - users table for FK resolution


class DegreeStatus(str, enum.Enum):
    """Lifecycle status of a degree record."""

    DRAFT = "draft"
    PENDING_CONFIRMATION = "pending_confirmation"
    SUBMITTED = "submitted"
    LINKED = "linked"

    @classmethod
    def _missing_(cls, value: object) -> "DegreeStatus | None":
        # Older clients and exports used "confirmed" for the submitted state
        if isinstance(value, str) and value.lower() == "confirmed":
            return cls.SUBMITTED
        return None


class Degree(BaseModel):
    """
    Degree record owned by a university.

    student_email is the binding key until the record is linked; it is
    always stored lower-cased. student_owner_id is set once by the linking
    resolver and never cleared.
    """

    __tablename__ = "degrees"

    university_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("universities.id", ondelete="CASCADE"),
        nullable=False,
    )
    student_owner_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("users.id"),
        nullable=True,
    )

    student_email: Mapped[str] = mapped_column(String(255), nullable=False)
    degree_type: Mapped[str] = mapped_column(String(100), nullable=False)
    major: Mapped[str] = mapped_column(String(200), nullable=False)
    graduation_date: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[DegreeStatus] = mapped_column(
        Enum(
            DegreeStatus,
            name="degree_status",
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        nullable=False,
        default=DegreeStatus.DRAFT,
    )

    # Reference into the document store, never the document itself
    file_path: Mapped[str | None] = mapped_column(String(500), nullable=True)

    university: Mapped[University] = relationship(University)

    __table_args__ = (
        Index("ix_degrees_university_status", "university_id", "status"),
        Index("ix_degrees_student_email", "student_email"),
    )

    def __repr__(self) -> str:
        return f"<Degree(id={self.id}, student_email={self.student_email}, status={self.status})>"

"""
University Models

Universities (tenants that own degree records) and the invitation tokens a
platform admin sends to onboard a university admin.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from diploma_api.core.database import Base
from diploma_api.modules.shared import BaseModel


class University(BaseModel):
    """
    University tenant.

    `domain` is the canonical email domain including its leading "@"
    (e.g. "@foo.edu"), stored lower-cased. Every student email accepted for
    this university must share it. Degree records reference the university
    with ON DELETE CASCADE.
    """

    __tablename__ = "universities"

    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    domain: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    accreditation_details: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def __repr__(self) -> str:
        return f"<University(id={self.id}, name={self.name}, domain={self.domain})>"


class InvitationToken(Base):
    """
    Single-use invitation for a university admin.

    Deleted when the invitation is accepted or by the expiry purge job.
    """

    __tablename__ = "invitation_tokens"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    university_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("universities.id", ondelete="CASCADE"),
        nullable=False,
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False)

    # SHA-256 hash of the emailed token
    token: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)

    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (Index("ix_invitation_tokens_expires_at", "expires_at"),)

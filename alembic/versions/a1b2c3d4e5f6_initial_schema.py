"""initial schema

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-19 12:00:00.000000

Creates universities, users, degrees and the single-use token tables.

Enum storage:
- user_role stores the enum member names (PLATFORM_ADMIN, ...)
- degree_status stores the lower-case values (draft, pending_confirmation, ...)
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "a1b2c3d4e5f6"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Create all tables."""
    user_role_enum = postgresql.ENUM(
        "PLATFORM_ADMIN",
        "UNIVERSITY_ADMIN",
        "STUDENT",
        name="user_role",
        create_type=False,
    )
    user_role_enum.create(op.get_bind(), checkfirst=True)

    degree_status_enum = postgresql.ENUM(
        "draft",
        "pending_confirmation",
        "submitted",
        "linked",
        name="degree_status",
        create_type=False,
    )
    degree_status_enum.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "universities",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        *_timestamps(),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("domain", sa.String(length=255), nullable=False),
        sa.Column("accreditation_details", sa.Text(), nullable=True),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
        sa.UniqueConstraint("domain"),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        *_timestamps(),
        sa.Column("university_id", sa.Integer(), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("role", user_role_enum, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.ForeignKeyConstraint(["university_id"], ["universities.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_university_id", "users", ["university_id"])

    op.create_table(
        "degrees",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        *_timestamps(),
        sa.Column("university_id", sa.Integer(), nullable=False),
        sa.Column("student_owner_id", sa.Integer(), nullable=True),
        sa.Column("student_email", sa.String(length=255), nullable=False),
        sa.Column("degree_type", sa.String(length=100), nullable=False),
        sa.Column("major", sa.String(length=200), nullable=False),
        sa.Column("graduation_date", sa.Date(), nullable=False),
        sa.Column("status", degree_status_enum, nullable=False),
        sa.Column("file_path", sa.String(length=500), nullable=True),
        sa.ForeignKeyConstraint(["university_id"], ["universities.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["student_owner_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_degrees_university_status", "degrees", ["university_id", "status"])
    op.create_index("ix_degrees_student_email", "degrees", ["student_email"])

    op.create_table(
        "verification_tokens",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("token", sa.String(length=255), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("token"),
    )
    op.create_index(
        "ix_verification_tokens_expires_at", "verification_tokens", ["expires_at"]
    )

    op.create_table(
        "invitation_tokens",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("university_id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("token", sa.String(length=255), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["university_id"], ["universities.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("token"),
    )
    op.create_index("ix_invitation_tokens_expires_at", "invitation_tokens", ["expires_at"])


def downgrade() -> None:
    """Drop all tables and enum types."""
    op.drop_index("ix_invitation_tokens_expires_at", table_name="invitation_tokens")
    op.drop_table("invitation_tokens")
    op.drop_index("ix_verification_tokens_expires_at", table_name="verification_tokens")
    op.drop_table("verification_tokens")
    op.drop_index("ix_degrees_student_email", table_name="degrees")
    op.drop_index("ix_degrees_university_status", table_name="degrees")
    op.drop_table("degrees")
    op.drop_index("ix_users_university_id", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
    op.drop_table("universities")

    sa.Enum(name="degree_status").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="user_role").drop(op.get_bind(), checkfirst=True)

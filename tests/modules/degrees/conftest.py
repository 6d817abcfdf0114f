"""
Fixtures for degrees tests.
"""

from datetime import UTC, date, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from diploma_api.core.auth import AuthContext
from diploma_api.modules.degrees.models import Degree, DegreeStatus
from diploma_api.modules.universities.models import University
from diploma_api.modules.users.models import UserRole


@pytest.fixture
def mock_db():
    """Create a mock database session."""
    db = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.refresh = AsyncMock()
    db.execute = AsyncMock()
    db.add = MagicMock()
    return db


@pytest.fixture
def admin_ctx():
    """University admin for university 1 (@foo.edu)."""
    return AuthContext(
        user_id=10,
        email="registrar@foo.edu",
        role=UserRole.UNIVERSITY_ADMIN,
        university_id=1,
    )


@pytest.fixture
def student_ctx():
    """Verified student at university 1."""
    return AuthContext(
        user_id=42,
        email="alice@foo.edu",
        role=UserRole.STUDENT,
        university_id=1,
    )


@pytest.fixture
def verified_university():
    """A verified university with domain @foo.edu."""
    university = MagicMock(spec=University)
    university.id = 1
    university.name = "Foo University"
    university.domain = "@foo.edu"
    university.is_verified = True
    return university


@pytest.fixture
def unverified_university():
    university = MagicMock(spec=University)
    university.id = 2
    university.name = "Bar College"
    university.domain = "@bar.edu"
    university.is_verified = False
    return university


@pytest.fixture
def make_degree():
    """Factory for mock degree records."""

    def _make(
        degree_id: int = 1,
        status: DegreeStatus = DegreeStatus.DRAFT,
        student_email: str = "alice@foo.edu",
        university_id: int = 1,
        file_path: str | None = None,
    ):
        degree = MagicMock(spec=Degree)
        degree.id = degree_id
        degree.university_id = university_id
        degree.student_owner_id = None
        degree.student_email = student_email
        degree.degree_type = "BSc"
        degree.major = "Computer Science"
        degree.graduation_date = date(2024, 6, 1)
        degree.status = status
        degree.file_path = file_path
        degree.created_at = datetime.now(UTC)
        degree.updated_at = datetime.now(UTC)
        return degree

    return _make


@pytest.fixture
def valid_fields():
    """A complete, valid single-upload submission."""
    return {
        "degree_type": "BSc",
        "major": "Computer Science",
        "graduation_date": "2024-06-01",
        "student_email": "Alice@Foo.edu",
    }

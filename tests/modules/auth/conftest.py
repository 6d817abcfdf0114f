"""
Fixtures for auth tests.
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from diploma_api.modules.auth.models import VerificationToken
from diploma_api.modules.universities.models import InvitationToken, University
from diploma_api.modules.users.models import User, UserRole


@pytest.fixture
def mock_db():
    """Create a mock database session."""
    db = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.flush = AsyncMock()
    db.execute = AsyncMock()
    db.add = MagicMock()
    return db


@pytest.fixture
def university():
    university = MagicMock(spec=University)
    university.id = 1
    university.name = "Foo University"
    university.domain = "@foo.edu"
    university.is_verified = True
    return university


@pytest.fixture
def student():
    """An unverified student account."""
    user = MagicMock(spec=User)
    user.id = 42
    user.email = "alice@foo.edu"
    user.password_hash = "hashed"
    user.role = UserRole.STUDENT
    user.university_id = 1
    user.is_active = True
    user.is_verified = False
    return user


@pytest.fixture
def verification_token():
    token = MagicMock(spec=VerificationToken)
    token.id = 5
    token.user_id = 42
    token.token = "hashed_token_value"
    token.expires_at = datetime.now(UTC) + timedelta(hours=1)
    token.created_at = datetime.now(UTC)
    return token


@pytest.fixture
def expired_verification_token(verification_token):
    verification_token.expires_at = datetime.now(UTC) - timedelta(minutes=1)
    return verification_token


@pytest.fixture
def invitation():
    invitation = MagicMock(spec=InvitationToken)
    invitation.id = 9
    invitation.university_id = 1
    invitation.email = "registrar@foo.edu"
    invitation.token = "hashed_invitation"
    invitation.expires_at = datetime.now(UTC) + timedelta(hours=1)
    return invitation

"""
Authentication and Authorization Module

Provides authentication dependencies for FastAPI endpoints.
This module handles JWT token validation and role-based access control
using the security utilities defined in security.py.

Every dependency resolves to an AuthContext which route handlers pass
explicitly into the service layer.
"""

import logging
from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from diploma_api.core.security import create_access_token, create_refresh_token, decode_token
from diploma_api.modules.users.models import User, UserRole

logger = logging.getLogger(__name__)

# Security scheme for OpenAPI documentation
security = HTTPBearer(
    auto_error=True,
    description="JWT Bearer token for authentication",
)


@dataclass(frozen=True)
class AuthContext:
    """
    The authenticated caller, populated from JWT claims.

    Attributes:
        user_id: Account id
        email: Account email (lower-cased)
        role: Account role
        university_id: University the account belongs to (None for platform admins)
    """

    user_id: int
    email: str
    role: UserRole
    university_id: int | None = None

    def __str__(self) -> str:
        return f"AuthContext(user_id={self.user_id}, email={self.email}, role={self.role.value})"


def _unauthorized(error: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": error, "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


def _forbidden(error: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail={"error": error, "message": message},
    )


def issue_tokens(user: User) -> dict[str, str]:
    """Create the access/refresh token pair for a user."""
    claims = {
        "email": user.email,
        "role": user.role.value,
        "university_id": user.university_id,
    }
    return {
        "access_token": create_access_token(str(user.id), additional_claims=claims),
        "refresh_token": create_refresh_token(str(user.id)),
    }


def _validate_jwt_token(token: str) -> AuthContext:
    """
    Validate JWT token and extract user claims.

    Raises:
        HTTPException 401: If token is invalid, expired, not an access
            token, or has malformed claims
    """
    payload = decode_token(token)

    if payload is None:
        logger.warning("Invalid or expired JWT token")
        raise _unauthorized("INVALID_TOKEN", "Invalid or expired authentication token.")

    # Verify token type is access token
    token_type = payload.get("type", "access")
    if token_type != "access":
        logger.warning(f"Invalid token type: {token_type}")
        raise _unauthorized("INVALID_TOKEN_TYPE", "This endpoint requires an access token.")

    try:
        user_id_str = payload.get("sub")
        if not user_id_str:
            raise ValueError("Missing 'sub' claim in token")

        university_id = payload.get("university_id")
        return AuthContext(
            user_id=int(user_id_str),
            email=payload.get("email", ""),
            role=UserRole(payload.get("role", "")),
            university_id=int(university_id) if university_id is not None else None,
        )
    except (ValueError, TypeError) as e:
        logger.warning(f"Invalid token claims: {e}")
        raise _unauthorized(
            "INVALID_TOKEN_CLAIMS", "Token contains invalid or missing claims."
        ) from e


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> AuthContext:
    """
    FastAPI dependency that validates the bearer token.

    Raises:
        HTTPException 401: If token is missing, invalid, or expired
    """
    user = _validate_jwt_token(credentials.credentials)
    logger.debug(f"Authenticated {user}")
    return user


async def require_platform_admin(
    user: AuthContext = Depends(get_current_user),
) -> AuthContext:
    """Only platform admins may continue."""
    if user.role != UserRole.PLATFORM_ADMIN:
        logger.warning(
            f"Access denied: User {user.user_id} has role '{user.role.value}', "
            "but 'platform_admin' is required"
        )
        raise _forbidden(
            "ADMIN_ACCESS_REQUIRED", "Platform admin access is required for this endpoint."
        )
    return user


async def require_university_admin(
    user: AuthContext = Depends(get_current_user),
) -> AuthContext:
    """Only university admins attached to a university may continue."""
    if user.role != UserRole.UNIVERSITY_ADMIN:
        logger.warning(
            f"Access denied: User {user.user_id} has role '{user.role.value}', "
            "but 'university_admin' is required"
        )
        raise _forbidden(
            "UNIVERSITY_ADMIN_REQUIRED", "University admin access is required for this endpoint."
        )
    if user.university_id is None:
        raise _forbidden(
            "NO_UNIVERSITY", "Your account is not associated with a university."
        )
    return user


async def require_student(
    user: AuthContext = Depends(get_current_user),
) -> AuthContext:
    """Only students attached to a university may continue."""
    if user.role != UserRole.STUDENT:
        raise _forbidden("STUDENT_ACCESS_REQUIRED", "Student access is required for this endpoint.")
    if user.university_id is None:
        raise _forbidden(
            "NO_UNIVERSITY", "Your account is not associated with a university."
        )
    return user


__all__ = [
    "AuthContext",
    "issue_tokens",
    "get_current_user",
    "require_platform_admin",
    "require_university_admin",
    "require_student",
]

"""Authentication module - login, registration, email confirmation."""

from .jobs import register_auth_jobs
from .router import router

__all__ = ["router", "register_auth_jobs"]

"""
Users module - User accounts and roles.
"""

from diploma_api.modules.users.models import User, UserRole
from diploma_api.modules.users.repository import UserRepository

__all__ = ["User", "UserRole", "UserRepository"]

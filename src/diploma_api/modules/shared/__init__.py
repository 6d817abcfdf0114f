"""
Shared module - base classes reused by every domain module.
"""

from diploma_api.modules.shared.models import BaseModel

__all__ = ["BaseModel"]

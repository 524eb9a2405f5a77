"""
Database models.
"""

from .base import Base, UUIDMixin
from .subject import SubjectMixin, SubjectOptions

__all__ = [
    # Base
    "Base",
    "UUIDMixin",
    # Subject binding
    "SubjectMixin",
    "SubjectOptions",
]

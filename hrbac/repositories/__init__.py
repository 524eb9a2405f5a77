"""
Repository pattern for data access.
"""

from hrbac.repositories.base import BaseRepository
from hrbac.repositories.subject import SubjectRepository

__all__ = ["BaseRepository", "SubjectRepository"]

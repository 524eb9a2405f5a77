"""
Base model classes and mixins.

Applications with their own declarative base only need SubjectMixin
(hrbac.models.subject); Base and UUIDMixin cover the common case.
"""

from datetime import datetime
from uuid import UUID as PyUUID, uuid4
from sqlalchemy import DateTime, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""

    # All datetimes are timezone-aware
    type_annotation_map = {
        datetime: DateTime(timezone=True),
    }


class UUIDMixin:
    """
    Mixin for UUID primary key.

    Usage:
        class User(Base, UUIDMixin, SubjectMixin):
            __tablename__ = "users"
            # No need to define id column
    """

    id: Mapped[PyUUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )

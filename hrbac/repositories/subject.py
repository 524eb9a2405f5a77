"""
Subject repository - collection-level role and permission cleanup.

Both operations are single bulk mutations: if any part fails the error
propagates once and nothing is retried.
"""

import json
from typing import TypeVar

import structlog
from sqlalchemy import String, cast, select
from sqlalchemy.exc import SQLAlchemyError

from hrbac.core.exceptions import PersistenceError

from .base import BaseRepository

logger = structlog.get_logger()

SubjectT = TypeVar("SubjectT")


class SubjectRepository(BaseRepository[SubjectT]):
    """
    Repository over any model using SubjectMixin.

    Usage:
        repo = SubjectRepository(db, model=User)
        await repo.clear_role("editor")
        await repo.pull_permission("write_doc")
    """

    async def save(self, entity: SubjectT) -> SubjectT:
        try:
            record = await super().save(entity)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to save subject: {e}") from e

        if record is None:
            raise PersistenceError("User is undefined")
        return record

    async def clear_role(self, role_name: str) -> int:
        """Set role to NULL on every subject holding role_name."""
        try:
            count = await self.update_many({"role": role_name}, role=None)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to remove role {role_name!r}: {e}") from e

        logger.info("Role removed from collection", model=self.model.__name__, role=role_name, count=count)
        return count

    async def pull_permission(self, permission_name: str) -> int:
        """Remove an ad-hoc permission from every subject holding it."""
        try:
            # Text prefilter on the serialized list; exact match below.
            needle = json.dumps(permission_name)
            stmt = select(self.model).where(
                cast(self.model.permissions, String).contains(needle, autoescape=True)
            )
            result = await self.db.execute(stmt)
            count = 0
            for subject in result.scalars():
                permissions = list(subject.permissions or [])
                if permission_name in permissions:
                    subject.permissions = [p for p in permissions if p != permission_name]
                    count += 1
            await self.db.flush()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to remove permission {permission_name!r}: {e}") from e

        logger.info(
            "Permission removed from collection",
            model=self.model.__name__,
            permission=permission_name,
            count=count,
        )
        return count

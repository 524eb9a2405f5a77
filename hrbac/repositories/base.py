"""
Base repository with the persistence calls subject bindings need.
"""

from typing import TypeVar, Generic, Type, Any
from sqlalchemy import inspect, update
from sqlalchemy.ext.asyncio import AsyncSession

ModelT = TypeVar("ModelT")


class BaseRepository(Generic[ModelT]):
    """
    Base repository providing save and bulk update.

    Usage:
        class UserRepository(BaseRepository[User]):
            model = User

        repo = UserRepository(db)
        user = await repo.save(user)

        # Or bind the model per instance
        repo = BaseRepository(db, model=User)
    """

    model: Type[ModelT]

    def __init__(self, db: AsyncSession, model: Type[ModelT] | None = None):
        self.db = db
        if model is not None:
            self.model = model

    async def get_by_id(self, id: Any) -> ModelT | None:
        """Get entity by primary key, always re-reading the row."""
        return await self.db.get(self.model, id, populate_existing=True)

    async def save(self, entity: ModelT) -> ModelT | None:
        """
        Flush an entity and re-read it from the database.

        Returns None when the row cannot be read back.
        """
        self.db.add(entity)
        await self.db.flush()

        identity = inspect(entity).identity
        if identity is None:
            return None
        return await self.get_by_id(identity)

    async def update_many(self, filters: dict, **data) -> int:
        """Update multiple entities matching filters."""
        stmt = (
            update(self.model)
            .where(*[getattr(self.model, k) == v for k, v in filters.items()])
            .values(**data)
        )
        result = await self.db.execute(stmt)
        return result.rowcount

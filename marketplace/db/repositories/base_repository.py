"""
Base repository - generic CRUD interface (SOLID: Interface Segregation, Dependency Inversion).
Challenge: Consistent data access, testability via mocks, query optimization in one place.
"""

from typing import Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.errors import NotFoundError
from marketplace.db.base import Base
from marketplace.db.retry import translate_store_errors

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Generic async repository. Subclasses define model-specific methods."""

    resource_name = "Record"

    def __init__(self, session: AsyncSession, model: type[ModelType]):
        self.session = session
        self.model = model

    async def get_by_id(self, id: int) -> ModelType | None:
        """Fetch single entity by primary key. Used for detail endpoints."""
        with translate_store_errors(self.resource_name):
            result = await self.session.execute(select(self.model).where(self.model.id == id))
            return result.scalar_one_or_none()

    async def require(self, id: int) -> ModelType:
        """Like get_by_id, but a missing row is a NotFoundError."""
        entity = await self.get_by_id(id)
        if entity is None:
            raise NotFoundError(self.resource_name, id)
        return entity

    async def add(self, entity: ModelType) -> ModelType:
        """Persist new entity. Caller commits session."""
        with translate_store_errors(self.resource_name):
            self.session.add(entity)
            await self.session.flush()  # Get ID without committing
        return entity

    async def flush(self) -> None:
        with translate_store_errors(self.resource_name):
            await self.session.flush()

"""
Base Repository

Generic data access helpers shared by all repositories.
"""

from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from genstack.models.orm import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """
    Repository with basic CRUD operations.

    Subclasses set `model` to the ORM class they manage.
    """

    model: type[ModelT]

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, id: UUID) -> ModelT | None:
        """Get an entity by primary key."""
        return await self.session.get(self.model, id)

    async def get(self, **filters: Any) -> ModelT | None:
        """Get the first entity matching all column filters."""
        query = select(self.model)
        for column, value in filters.items():
            query = query.where(getattr(self.model, column) == value)
        result = await self.session.execute(query)
        return result.scalars().first()

    async def create(self, entity: ModelT) -> ModelT:
        """Add an entity and flush so defaults are populated."""
        self.session.add(entity)
        await self.session.flush()
        return entity

    async def delete(self, entity: ModelT) -> None:
        """Delete an entity."""
        await self.session.delete(entity)
        await self.session.flush()

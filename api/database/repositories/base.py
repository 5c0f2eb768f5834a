"""
Base Repository

Provides common CRUD operations for all repositories.
"""

from typing import Any, Generic, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel


ModelType = TypeVar("ModelType", bound=SQLModel)


class BaseRepository(Generic[ModelType]):
    """Base repository with common CRUD operations"""

    def __init__(self, model: type[ModelType], session: AsyncSession):
        """
        Initialize repository

        Args:
            model: SQLModel class
            session: Async database session
        """
        self.model = model
        self.session = session

    async def create(self, obj: ModelType) -> ModelType:
        """
        Create a new record

        Args:
            obj: Model instance to create

        Returns:
            Created model instance
        """
        self.session.add(obj)
        await self.session.commit()
        await self.session.refresh(obj)
        return obj

    async def get(self, id: Any) -> ModelType | None:
        """
        Get record by primary key

        Args:
            id: Primary key value

        Returns:
            Model instance or None
        """
        return await self.session.get(self.model, id)

    async def count(self, *criteria: Any) -> int:
        """
        Count records, optionally only those matching ``criteria``

        Returns:
            Matching count
        """
        statement = select(func.count()).select_from(self.model)
        if criteria:
            statement = statement.where(*criteria)
        result = await self.session.execute(statement)
        return int(result.scalar_one())

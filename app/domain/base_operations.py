import uuid as uuid_pkg
from typing import Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel

ModelType = TypeVar("ModelType", bound=SQLModel)


class BaseOperations(Generic[ModelType]):
    """Shared lookups for user-owned tables (those with id and user_id)."""

    def __init__(self, model: type[ModelType]):
        self.model = model

    async def get(self, db: AsyncSession, id: uuid_pkg.UUID) -> ModelType | None:
        statement = select(self.model).where(self.model.id == id)  # type: ignore[attr-defined]
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    async def get_by_user(
        self,
        db: AsyncSession,
        user_id: uuid_pkg.UUID,
        id: uuid_pkg.UUID,
    ) -> ModelType | None:
        """Get a record by ID, scoped to its owner."""
        statement = select(self.model).where(
            self.model.id == id,  # type: ignore[attr-defined]
            self.model.user_id == user_id,  # type: ignore[attr-defined]
        )
        result = await db.execute(statement)
        return result.scalar_one_or_none()

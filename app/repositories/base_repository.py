from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.database import Base

ModelType = TypeVar("ModelType", bound=Base)
PydanticType = TypeVar("PydanticType", bound=BaseModel)


class BaseRepository(Generic[ModelType, PydanticType]):
    """Generic base repository with common CRUD operations."""

    def __init__(self, db: AsyncSession, model_class: Any):
        self.db = db
        self.model_class = model_class

    async def get_by_id(self, id: Any) -> Optional[PydanticType]:
        """Get a single record by ID."""
        db_model = await self._get_model(id)
        return self._to_pydantic(db_model) if db_model else None

    async def create(self, pydantic_model: PydanticType) -> PydanticType:
        """Stage a new record in the current transaction; the caller commits."""
        db_model = self._from_pydantic(pydantic_model)
        self.db.add(db_model)
        await self.db.flush()
        await self.db.refresh(db_model)
        return self._to_pydantic(db_model)

    async def _get_model(self, id: Any) -> Optional[ModelType]:
        query = select(self.model_class).where(
            self.model_class.id == self._coerce_id(id)
        )  # type: ignore
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    def _coerce_id(self, id: Any) -> Any:
        """Convert an incoming id to the primary key's Python type."""
        return id

    def _to_pydantic(self, db_model: ModelType) -> PydanticType:
        """Convert SQLAlchemy model to Pydantic model.

        This should be overridden in subclasses for specific conversion logic.
        """
        raise NotImplementedError

    def _from_pydantic(self, pydantic_model: PydanticType) -> ModelType:
        """Convert Pydantic model to SQLAlchemy model.

        This should be overridden in subclasses for specific conversion logic.
        """
        raise NotImplementedError

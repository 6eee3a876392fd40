from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.models.api.messages import MessageResponse
from app.models.db.message_model import MessageModel
from app.repositories.base_repository import BaseRepository
from app.timeutils import as_utc


class MessageRepository(BaseRepository[MessageModel, MessageResponse]):
    """Repository for chat message operations."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, MessageModel)

    async def get_by_room(self, room_id: str) -> List[MessageResponse]:
        """Get all messages of a room, oldest first."""
        query = (
            select(self.model_class)
            .where(self.model_class.room_id == room_id)
            .order_by(self.model_class.timestamp, self.model_class.created_at)
        )  # type: ignore
        result = await self.db.execute(query)
        db_models = result.scalars().all()
        return [self._to_pydantic(db_model) for db_model in db_models]

    async def get_latest(self, room_id: str) -> Optional[MessageResponse]:
        """Get the most recent message of a room."""
        query = (
            select(self.model_class)
            .where(self.model_class.room_id == room_id)
            .order_by(
                self.model_class.timestamp.desc(), self.model_class.created_at.desc()
            )
            .limit(1)
        )  # type: ignore
        result = await self.db.execute(query)
        db_model = result.scalars().first()
        return self._to_pydantic(db_model) if db_model else None

    async def get_received_by_room(
        self, room_ids: List[str], user_id: str
    ) -> Dict[str, List[MessageResponse]]:
        """Get the messages other participants sent to the user, per room."""
        received: Dict[str, List[MessageResponse]] = {room_id: [] for room_id in room_ids}
        if not room_ids:
            return received

        query = select(self.model_class).where(
            self.model_class.room_id.in_(room_ids),
            self.model_class.sender_id != user_id,
        )  # type: ignore
        result = await self.db.execute(query)
        for db_model in result.scalars().all():
            received[db_model.room_id].append(self._to_pydantic(db_model))
        return received

    async def create_message(
        self, room_id: str, sender_id: str, text: str, timestamp: datetime
    ) -> MessageResponse:
        """Stage a message the sender has already read (not committed)."""
        new_message = MessageResponse(
            id=uuid4(),
            room_id=room_id,
            sender_id=sender_id,
            text=text,
            timestamp=timestamp,
            read_by=[sender_id],
            is_deleted=False,
            created_at=timestamp,
            updated_at=timestamp,
        )
        return await self.create(new_message)

    async def add_reader(
        self, room_id: str, user_id: str, visible_after: Optional[datetime] = None
    ) -> int:
        """Add the user to read_by of every message they can see.

        Only messages from other participants that are newer than
        ``visible_after`` are touched. Returns the number of messages changed.
        """
        query = select(self.model_class).where(
            self.model_class.room_id == room_id,
            self.model_class.sender_id != user_id,
        )  # type: ignore
        result = await self.db.execute(query)

        changed = 0
        for db_model in result.scalars().all():
            if visible_after is not None and as_utc(db_model.timestamp) <= visible_after:
                continue
            read_by = list(db_model.read_by or [])
            if user_id in read_by:
                continue
            # Reassign so the JSON column is flagged dirty
            db_model.read_by = read_by + [user_id]
            changed += 1

        if changed:
            await self.db.commit()
        return changed

    async def tombstone(self, message_id: Any, text: str) -> Optional[MessageResponse]:
        """Replace the text of a message and flag it deleted."""
        db_model = await self._get_model(message_id)
        if not db_model:
            return None

        db_model.text = text
        db_model.is_deleted = True
        await self.db.commit()
        await self.db.refresh(db_model)
        return self._to_pydantic(db_model)

    def _coerce_id(self, id: Any) -> Any:
        return id if isinstance(id, UUID) else UUID(str(id))

    def _to_pydantic(self, db_model: Any) -> MessageResponse:
        """Convert SQLAlchemy MessageModel to Pydantic MessageResponse."""
        timestamp = as_utc(db_model.timestamp)
        return MessageResponse(
            id=db_model.id,
            room_id=db_model.room_id,
            sender_id=db_model.sender_id,
            text=db_model.text,
            timestamp=timestamp,
            read_by=list(db_model.read_by or []),
            is_deleted=bool(db_model.is_deleted),
            created_at=as_utc(db_model.created_at, default=timestamp),
            updated_at=as_utc(db_model.updated_at, default=timestamp),
        )

    def _from_pydantic(self, pydantic_model: MessageResponse) -> MessageModel:
        """Convert Pydantic MessageResponse to SQLAlchemy MessageModel."""
        return MessageModel(
            id=pydantic_model.id,
            room_id=pydantic_model.room_id,
            sender_id=pydantic_model.sender_id,
            text=pydantic_model.text,
            timestamp=pydantic_model.timestamp,
            read_by=pydantic_model.read_by,
            is_deleted=pydantic_model.is_deleted,
            created_at=pydantic_model.created_at,
            updated_at=pydantic_model.updated_at,
        )

from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from app.models.api.chat_rooms import ChatRoomResponse, ParticipantSnapshot
from app.models.api.users import UserResponse
from app.models.db.chat_room_model import ChatRoomModel
from app.models.db.participant_model import ParticipantModel
from app.repositories.base_repository import BaseRepository
from app.timeutils import as_utc, as_utc_or_none, utcnow


def room_id_for(user_id: str, other_user_id: str) -> str:
    """Deterministic room id shared by a pair of users."""
    return "_".join(sorted([user_id, other_user_id]))


class ChatRoomRepository(BaseRepository[ChatRoomModel, ChatRoomResponse]):
    """Repository for chat room operations."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, ChatRoomModel)

    async def list_for_user(self, user_id: str) -> List[ChatRoomResponse]:
        """Get every room the user participates in (unordered)."""
        # No ORDER BY: rooms are sorted after the fetch by the caller
        query = (
            select(self.model_class)
            .join(self.model_class.participants)
            .where(ParticipantModel.user_id == user_id)
            .options(selectinload(self.model_class.participants))
        )  # type: ignore
        result = await self.db.execute(query)
        db_models = result.scalars().unique().all()
        return [self._to_pydantic(db_model) for db_model in db_models]

    async def create_for_pair(
        self, room_id: str, profiles: List[UserResponse]
    ) -> ChatRoomResponse:
        """Create a room with a participant row per profile."""
        now = utcnow()
        db_model = ChatRoomModel(
            id=room_id,
            last_message="",
            last_message_sender_id=None,
            last_message_timestamp=None,
            created_at=now,
            updated_at=now,
        )
        db_model.participants = [
            ParticipantModel(
                user_id=profile.id,
                name=profile.name,
                avatar_url=profile.avatar_url or "",
                role=profile.role,
                has_read=False,
                deleted_at=None,
                created_at=now,
            )
            for profile in profiles
        ]
        self.db.add(db_model)
        await self.db.commit()

        # After creating, we need to eagerly load participants for _to_pydantic
        refreshed = await self._get_model(room_id)
        return self._to_pydantic(refreshed)

    async def record_message(
        self, room_id: str, text: str, sender_id: str, timestamp: datetime
    ) -> Optional[ChatRoomResponse]:
        """Point the room preview at a new message; only the sender has read it.

        Flushed, not committed: it shares the transaction of the message insert.
        """
        db_model = await self._get_model(room_id)
        if not db_model:
            return None

        db_model.last_message = text
        db_model.last_message_sender_id = sender_id
        db_model.last_message_timestamp = timestamp
        db_model.updated_at = timestamp
        for participant in db_model.participants:
            participant.has_read = participant.user_id == sender_id

        await self.db.flush()
        return self._to_pydantic(db_model)

    async def set_preview(self, room_id: str, text: str) -> Optional[ChatRoomResponse]:
        """Replace the last-message preview without touching activity time."""
        db_model = await self._get_model(room_id)
        if not db_model:
            return None

        db_model.last_message = text
        await self.db.commit()
        return self._to_pydantic(db_model)

    async def _get_model(self, id: Any) -> Optional[ChatRoomModel]:
        query = (
            select(self.model_class)
            .where(self.model_class.id == id)
            .options(selectinload(self.model_class.participants))
        )  # type: ignore
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    def _to_pydantic(self, db_model: Any) -> ChatRoomResponse:
        """Convert SQLAlchemy ChatRoomModel to Pydantic ChatRoomResponse."""
        participants = sorted(db_model.participants, key=lambda p: p.user_id)

        return ChatRoomResponse(
            id=db_model.id,
            participant_ids=[p.user_id for p in participants],
            participants={
                p.user_id: ParticipantSnapshot(
                    name=p.name, avatar_url=p.avatar_url or "", role=p.role
                )
                for p in participants
            },
            last_message=db_model.last_message or "",
            last_message_sender_id=db_model.last_message_sender_id,
            last_message_timestamp=as_utc_or_none(db_model.last_message_timestamp),
            read_by=[p.user_id for p in participants if p.has_read],
            deleted_by={
                p.user_id: as_utc(p.deleted_at)
                for p in participants
                if p.deleted_at is not None
            },
            created_at=as_utc(db_model.created_at),
            updated_at=as_utc(db_model.updated_at),
        )

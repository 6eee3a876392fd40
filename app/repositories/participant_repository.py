from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.models.api.chat_rooms import ParticipantSnapshot
from app.models.db.participant_model import ParticipantModel
from app.repositories.base_repository import BaseRepository


class ParticipantRepository(BaseRepository[ParticipantModel, ParticipantSnapshot]):
    """Repository for per-user room state (read flag, soft-delete marker)."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, ParticipantModel)

    async def get_participant(
        self, room_id: str, user_id: str
    ) -> Optional[ParticipantModel]:
        """Get the participant row of a user in a room, if they are in it."""
        query = select(self.model_class).where(
            self.model_class.room_id == room_id,
            self.model_class.user_id == user_id,
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def mark_read(self, room_id: str, user_id: str) -> bool:
        """Add the user to the room's read-by set. Returns True on change."""
        participant = await self.get_participant(room_id, user_id)
        if participant is None or participant.has_read:
            return False

        participant.has_read = True
        await self.db.commit()
        return True

    async def set_deleted_at(
        self, room_id: str, user_id: str, deleted_at: datetime
    ) -> bool:
        """Set the user's soft-delete marker on the room."""
        participant = await self.get_participant(room_id, user_id)
        if participant is None:
            return False

        participant.deleted_at = deleted_at
        await self.db.commit()
        return True

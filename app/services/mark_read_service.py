import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.realtime.hub import SubscriptionHub, hub, room_topic, rooms_topic
from app.repositories.chat_room_repository import ChatRoomRepository
from app.repositories.message_repository import MessageRepository
from app.repositories.participant_repository import ParticipantRepository
from app.services.room_access import get_room_for_participant

logger = logging.getLogger(__name__)


class MarkReadService:
    """Service for read receipts on rooms and messages."""

    def __init__(self, db: AsyncSession, event_hub: SubscriptionHub = hub):
        self.db = db
        self.hub = event_hub
        self.room_repo = ChatRoomRepository(db)
        self.message_repo = MessageRepository(db)
        self.participant_repo = ParticipantRepository(db)

    async def mark_room_read(self, room_id: str, user_id: str) -> bool:
        """Mark the room and every message the user can see as read.

        Idempotent: a second call changes nothing and publishes nothing.
        """
        room = await get_room_for_participant(self.room_repo, room_id, user_id)
        return await self.mark_read(room.id, user_id, room.deleted_by.get(user_id))

    async def mark_read(
        self, room_id: str, user_id: str, visible_after: Optional[datetime]
    ) -> bool:
        """Mark read for a room already checked for participation."""
        room_changed = await self.participant_repo.mark_read(room_id, user_id)
        messages_changed = await self.message_repo.add_reader(
            room_id, user_id, visible_after=visible_after
        )

        if not room_changed and not messages_changed:
            return False

        logger.debug(
            "User %s read room %s (%d message(s))", user_id, room_id, messages_changed
        )
        # Senders see their read receipts; the reader's directory drops the badge
        self.hub.publish(room_topic(room_id), rooms_topic(user_id))
        return True

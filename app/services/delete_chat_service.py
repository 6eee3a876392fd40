import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app import timeutils
from app.models.api.chat_rooms import ChatRoomResponse
from app.realtime.hub import SubscriptionHub, hub, room_topic, rooms_topic
from app.repositories.chat_room_repository import ChatRoomRepository
from app.repositories.participant_repository import ParticipantRepository
from app.services.room_access import get_room_for_participant

logger = logging.getLogger(__name__)


class DeleteChatService:
    """Service for clearing a chat from one participant's point of view."""

    def __init__(self, db: AsyncSession, event_hub: SubscriptionHub = hub):
        self.db = db
        self.hub = event_hub
        self.room_repo = ChatRoomRepository(db)
        self.participant_repo = ParticipantRepository(db)

    async def delete_chat_for_user(
        self, room_id: str, user_id: str
    ) -> ChatRoomResponse:
        """Set the user's delete marker to now; the other participant is unaffected."""
        room = await get_room_for_participant(self.room_repo, room_id, user_id)

        deleted_at = timeutils.utcnow()
        await self.participant_repo.set_deleted_at(room.id, user_id, deleted_at)

        logger.info("User %s cleared chat room %s", user_id, room.id)
        self.hub.publish(rooms_topic(user_id), room_topic(room.id))
        return room.model_copy(
            update={"deleted_by": {**room.deleted_by, user_id: deleted_at}}
        )

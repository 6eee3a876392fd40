import logging
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.api.messages import MessageResponse
from app.realtime.hub import SubscriptionHub, hub, room_topic, rooms_topic
from app.repositories.chat_room_repository import ChatRoomRepository
from app.repositories.message_repository import MessageRepository
from app.services.room_access import get_room_for_participant

logger = logging.getLogger(__name__)

DELETED_MESSAGE_TEXT = "This message was deleted"


class DeleteMessageService:
    """Service for tombstoning a message on behalf of its sender."""

    def __init__(self, db: AsyncSession, event_hub: SubscriptionHub = hub):
        self.db = db
        self.hub = event_hub
        self.room_repo = ChatRoomRepository(db)
        self.message_repo = MessageRepository(db)

    async def delete_message(
        self, room_id: str, message_id: UUID, user_id: str
    ) -> MessageResponse:
        """
        Delete a message for everyone:

        1. Verify the message exists in this room and the user sent it
        2. Replace the text and flag it deleted, keeping sender and timestamp
        3. Update the room preview if it was the latest message
        """
        room = await get_room_for_participant(self.room_repo, room_id, user_id)

        # Step 1: Ownership
        message = await self.message_repo.get_by_id(message_id)
        if not message or message.room_id != room.id:
            raise HTTPException(status_code=404, detail="Message not found")
        if message.sender_id != user_id:
            raise HTTPException(
                status_code=403, detail="Only the sender can delete a message"
            )
        if message.is_deleted:
            return message

        # Step 2: Tombstone
        tombstoned = await self.message_repo.tombstone(message.id, DELETED_MESSAGE_TEXT)
        if not tombstoned:
            raise HTTPException(status_code=404, detail="Message not found")

        # Step 3: Preview
        latest = await self.message_repo.get_latest(room.id)
        if latest and latest.id == message.id:
            await self.room_repo.set_preview(room.id, DELETED_MESSAGE_TEXT)

        logger.info("Message %s in room %s deleted by sender", message.id, room.id)
        self.hub.publish(
            room_topic(room.id),
            *[rooms_topic(participant_id) for participant_id in room.participant_ids],
        )
        return tombstoned

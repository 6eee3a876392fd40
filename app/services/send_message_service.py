import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app import timeutils
from app.models.api.messages import MessageResponse, SendMessageRequest
from app.realtime.hub import SubscriptionHub, hub, room_topic, rooms_topic
from app.repositories.chat_room_repository import ChatRoomRepository
from app.repositories.message_repository import MessageRepository
from app.services.room_access import get_room_for_participant

logger = logging.getLogger(__name__)


class SendMessageService:
    """Service for sending a message into a chat room."""

    def __init__(self, db: AsyncSession, event_hub: SubscriptionHub = hub):
        self.db = db
        self.hub = event_hub
        self.message_repo = MessageRepository(db)
        self.room_repo = ChatRoomRepository(db)

    async def send_message(
        self, room_id: str, sender_id: str, request: SendMessageRequest
    ) -> MessageResponse:
        """
        Main business logic for sending a message:
        1. Validate the text
        2. Verify the sender is a participant of the room
        3. Save the message, read by the sender only
        4. Move the room preview to the new message
        5. Notify live subscribers of both participants
        """
        # Step 1: Validate
        text = request.text.strip()
        if not text:
            raise ValueError("Message text must not be empty")

        # Step 2: Participant check
        room = await get_room_for_participant(self.room_repo, room_id, sender_id)

        # Steps 3 and 4 commit together: a stored message always has its preview.
        # Delete markers are kept; the newer activity is what makes a cleared
        # room visible again.
        timestamp = timeutils.utcnow()
        try:
            message = await self.message_repo.create_message(
                room_id=room.id, sender_id=sender_id, text=text, timestamp=timestamp
            )
            await self.room_repo.record_message(
                room_id=room.id, text=text, sender_id=sender_id, timestamp=timestamp
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        # Step 5: Fan out
        self.hub.publish(
            room_topic(room.id),
            *[rooms_topic(participant_id) for participant_id in room.participant_ids],
        )
        logger.debug("Message %s sent to room %s", message.id, room.id)
        return message

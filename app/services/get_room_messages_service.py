import logging
from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.api.messages import MessageResponse
from app.realtime.hub import SubscriptionHub, hub
from app.repositories.chat_room_repository import ChatRoomRepository
from app.repositories.message_repository import MessageRepository
from app.services import chat_visibility
from app.services.mark_read_service import MarkReadService
from app.services.room_access import get_room_for_participant

logger = logging.getLogger(__name__)


class GetRoomMessagesService:
    """Service for reading the message stream of a chat room."""

    def __init__(self, db: AsyncSession, event_hub: SubscriptionHub = hub):
        self.db = db
        self.room_repo = ChatRoomRepository(db)
        self.message_repo = MessageRepository(db)
        self.mark_read_service = MarkReadService(db, event_hub)

    async def get_room_messages(
        self, room_id: str, viewer_id: str, mark_read: bool = True
    ) -> List[MessageResponse]:
        """
        Get the messages of a room as the viewer sees them:

        1. Verify the viewer is a participant
        2. Retrieve messages oldest first
        3. Hide everything up to the viewer's delete marker
        4. Mark the visible messages read by the viewer
        """
        # Step 1: Participant check
        room = await get_room_for_participant(self.room_repo, room_id, viewer_id)
        deleted_at = room.deleted_by.get(viewer_id)

        # Step 2: Get messages from repository
        messages = await self.message_repo.get_by_room(room.id)

        # Step 3: Personal clear-history overlay
        visible = chat_visibility.visible_messages(messages, deleted_at)

        # Step 4: Read receipts
        if mark_read:
            changed = await self.mark_read_service.mark_read(
                room.id, viewer_id, deleted_at
            )
            if changed:
                visible = [
                    self._with_reader(message, viewer_id) for message in visible
                ]

        return visible

    @staticmethod
    def _with_reader(message: MessageResponse, viewer_id: str) -> MessageResponse:
        if message.sender_id == viewer_id or viewer_id in message.read_by:
            return message
        return message.model_copy(update={"read_by": message.read_by + [viewer_id]})

import logging

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.api.chat_rooms import ChatRoomResponse
from app.realtime.hub import SubscriptionHub, hub, rooms_topic
from app.repositories.chat_room_repository import ChatRoomRepository, room_id_for
from app.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)


class CreateChatRoomService:
    """Service for opening the chat room shared by two users."""

    def __init__(self, db: AsyncSession, event_hub: SubscriptionHub = hub):
        self.db = db
        self.hub = event_hub
        self.room_repo = ChatRoomRepository(db)
        self.user_repo = UserRepository(db)

    async def create_or_get(self, user_id: str, other_user_id: str) -> ChatRoomResponse:
        """
        Return the room for the pair, creating it on first contact:

        1. Reject chatting with yourself
        2. Return the existing room if there is one
        3. Snapshot both profiles into a new room
        """
        if user_id == other_user_id:
            raise ValueError("You cannot start a chat with yourself")

        room_id = room_id_for(user_id, other_user_id)

        # Step 1: Existing room. A soft-delete marker is left in place so the
        # cleared history stays cleared when the chat is reopened.
        room = await self.room_repo.get_by_id(room_id)
        if room:
            return room

        # Step 2: Both profiles must exist to build the participant snapshot
        profiles = await self.user_repo.get_many([user_id, other_user_id])
        found = {profile.id for profile in profiles}
        missing = [uid for uid in (user_id, other_user_id) if uid not in found]
        if missing:
            logger.warning("Cannot create room %s, missing profiles %s", room_id, missing)
            raise HTTPException(status_code=404, detail="User profile not found")

        # Step 3: Create, tolerating the other participant winning the race
        try:
            room = await self.room_repo.create_for_pair(room_id, profiles)
        except IntegrityError:
            await self.db.rollback()
            existing = await self.room_repo.get_by_id(room_id)
            if not existing:
                raise
            return existing

        logger.info("Created chat room %s", room_id)
        self.hub.publish(rooms_topic(user_id), rooms_topic(other_user_id))
        return room

from typing import Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.api.chat_rooms import (
    ChatRoomResponse,
    ChatRoomSummaryResponse,
    ParticipantSnapshot,
)
from app.repositories.chat_room_repository import ChatRoomRepository
from app.repositories.message_repository import MessageRepository
from app.repositories.user_repository import UserRepository
from app.services import chat_visibility
from app.services.room_access import get_room_for_participant


class ListChatRoomsService:
    """Service for the room directory of a user."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.room_repo = ChatRoomRepository(db)
        self.message_repo = MessageRepository(db)
        self.user_repo = UserRepository(db)

    async def list_rooms(
        self, user_id: str, current_room_id: Optional[str] = None
    ) -> List[ChatRoomSummaryResponse]:
        """
        Build the directory of rooms the user participates in:

        1. Fetch the user's rooms
        2. Drop rooms the user cleared, unless it is the room being viewed
        3. Sort by last activity, newest first
        4. Attach the other participant, presence and unread state
        """
        # Step 1: Get rooms from repository
        rooms = await self.room_repo.list_for_user(user_id)

        # Step 2: Soft-delete overlay
        rooms = [
            room
            for room in rooms
            if chat_visibility.is_visible_in_directory(room, user_id, current_room_id)
        ]

        # Step 3: Sort after the fetch
        rooms = chat_visibility.sort_rooms_by_activity(rooms)

        # Step 4: Per-viewer projection
        return await self._summarize(rooms, user_id)

    async def get_room(self, room_id: str, user_id: str) -> ChatRoomResponse:
        """Get a single room the user participates in."""
        return await get_room_for_participant(self.room_repo, room_id, user_id)

    async def _summarize(
        self, rooms: List[ChatRoomResponse], user_id: str
    ) -> List[ChatRoomSummaryResponse]:
        others: Dict[str, str] = {}
        for room in rooms:
            other_id = chat_visibility.other_participant_id(room, user_id)
            if other_id:
                others[room.id] = other_id

        profiles = await self.user_repo.get_many(sorted(set(others.values())))
        last_seen = {profile.id: profile.last_seen for profile in profiles}
        received = await self.message_repo.get_received_by_room(
            [room.id for room in rooms], user_id
        )

        summaries = []
        for room in rooms:
            other_id = others.get(room.id)
            if other_id is None:
                continue

            deleted_for_user = chat_visibility.is_deleted_for_user(room, user_id)
            summaries.append(
                ChatRoomSummaryResponse(
                    id=room.id,
                    other_participant_id=other_id,
                    other_participant=room.participants.get(other_id)
                    or ParticipantSnapshot(name="Unknown", avatar_url="", role="member"),
                    other_participant_last_seen=last_seen.get(other_id),
                    last_message_preview="" if deleted_for_user else room.last_message,
                    last_message_sender_id=room.last_message_sender_id,
                    last_activity=chat_visibility.last_activity(room),
                    is_unread=chat_visibility.is_unread(room, user_id),
                    unread_count=chat_visibility.count_unread(
                        received.get(room.id, []),
                        user_id,
                        room.deleted_by.get(user_id),
                    ),
                    is_deleted_for_user=deleted_for_user,
                )
            )
        return summaries

from fastapi import HTTPException

from app.models.api.chat_rooms import ChatRoomResponse
from app.repositories.chat_room_repository import ChatRoomRepository


async def get_room_for_participant(
    room_repo: ChatRoomRepository, room_id: str, user_id: str
) -> ChatRoomResponse:
    """Load a room on behalf of one of its participants."""
    room = await room_repo.get_by_id(room_id)
    if not room:
        raise HTTPException(status_code=404, detail="Chat room not found")
    if user_id not in room.participant_ids:
        raise HTTPException(
            status_code=403, detail="You are not a participant in this chat room"
        )
    return room

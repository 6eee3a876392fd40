"""Read-path rules for what one participant sees of a shared room.

Rooms and messages are shared by both participants; per-user deletion is an
overlay (user id -> marker timestamp) applied when reading, never a physical
delete.
"""

from datetime import datetime
from typing import Iterable, List, Optional

from app.models.api.chat_rooms import ChatRoomResponse
from app.models.api.messages import MessageResponse


def last_activity(room: ChatRoomResponse) -> datetime:
    """Time of the latest message, or of the last room update."""
    return room.last_message_timestamp or room.updated_at


def is_deleted_for_user(room: ChatRoomResponse, user_id: str) -> bool:
    """Whether the user cleared the room and nothing arrived since."""
    deleted_at = room.deleted_by.get(user_id)
    if deleted_at is None:
        return False
    if room.last_message_timestamp is None:
        return True
    return room.last_message_timestamp <= deleted_at


def is_visible_in_directory(
    room: ChatRoomResponse, user_id: str, current_room_id: Optional[str] = None
) -> bool:
    """Directory filter: participants only; cleared rooms unless open."""
    if user_id not in room.participant_ids:
        return False
    if not is_deleted_for_user(room, user_id):
        return True
    return room.id == current_room_id


def sort_rooms_by_activity(rooms: Iterable[ChatRoomResponse]) -> List[ChatRoomResponse]:
    """Newest activity first. Done after the fetch to avoid a compound index."""
    return sorted(rooms, key=last_activity, reverse=True)


def visible_messages(
    messages: Iterable[MessageResponse], deleted_at: Optional[datetime]
) -> List[MessageResponse]:
    """Messages strictly newer than the viewer's delete marker."""
    if deleted_at is None:
        return list(messages)
    return [message for message in messages if message.timestamp > deleted_at]


def is_unread(room: ChatRoomResponse, user_id: str) -> bool:
    """A room is unread when it has a preview the user has not read."""
    if is_deleted_for_user(room, user_id):
        return False
    return bool(room.last_message) and user_id not in room.read_by


def count_unread(
    messages: Iterable[MessageResponse],
    user_id: str,
    deleted_at: Optional[datetime] = None,
) -> int:
    """Visible messages from others that the user has not read."""
    return sum(
        1
        for message in visible_messages(messages, deleted_at)
        if message.sender_id != user_id and user_id not in message.read_by
    )


def other_participant_id(room: ChatRoomResponse, user_id: str) -> Optional[str]:
    return next((pid for pid in room.participant_ids if pid != user_id), None)

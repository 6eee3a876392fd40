# Repository classes for database operations
from .base_repository import BaseRepository
from .chat_room_repository import ChatRoomRepository
from .message_repository import MessageRepository
from .participant_repository import ParticipantRepository
from .user_repository import UserRepository

__all__ = [
    "BaseRepository",
    "ChatRoomRepository",
    "MessageRepository",
    "ParticipantRepository",
    "UserRepository",
]

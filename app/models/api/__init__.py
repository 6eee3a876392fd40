# API models for request/response contracts
from .chat_rooms import (
    ChatRoomResponse,
    ChatRoomSummaryResponse,
    CreateChatRoomRequest,
    ParticipantSnapshot,
)
from .messages import MessageResponse, SendMessageRequest
from .users import (
    HeartbeatRequest,
    HeartbeatResponse,
    ParticipantStatusResponse,
    UserProfileRequest,
    UserResponse,
)

__all__ = [
    "SendMessageRequest",
    "MessageResponse",
    "CreateChatRoomRequest",
    "ChatRoomResponse",
    "ChatRoomSummaryResponse",
    "ParticipantSnapshot",
    "UserProfileRequest",
    "UserResponse",
    "HeartbeatRequest",
    "HeartbeatResponse",
    "ParticipantStatusResponse",
]

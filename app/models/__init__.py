# Export all models
from .api import (
    ChatRoomResponse,
    ChatRoomSummaryResponse,
    CreateChatRoomRequest,
    HeartbeatRequest,
    HeartbeatResponse,
    MessageResponse,
    ParticipantSnapshot,
    ParticipantStatusResponse,
    SendMessageRequest,
    UserProfileRequest,
    UserResponse,
)
from .db import (
    ChatRoomModel,
    MessageModel,
    ParticipantModel,
    UserModel,
)

__all__ = [
    # API models
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
    # DB models
    "ChatRoomModel",
    "MessageModel",
    "ParticipantModel",
    "UserModel",
]

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ParticipantSnapshot(BaseModel):
    """Display data of a participant, copied when the room was created."""

    name: str
    avatar_url: str
    role: str  # 'member' or 'trainer'

    model_config = ConfigDict(from_attributes=True)


class CreateChatRoomRequest(BaseModel):
    """Request model for opening a chat with another user."""

    participant_id: str = Field(
        ..., min_length=1, description="User id of the other participant"
    )


class ChatRoomResponse(BaseModel):
    """Response model for chat room data."""

    id: str
    participant_ids: List[str]
    participants: Dict[str, ParticipantSnapshot]
    last_message: str
    last_message_sender_id: Optional[str]
    last_message_timestamp: Optional[datetime]
    read_by: List[str]
    deleted_by: Dict[str, datetime]  # user id -> soft-delete marker
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ChatRoomSummaryResponse(BaseModel):
    """A chat room as one user sees it in their room directory."""

    id: str
    other_participant_id: str
    other_participant: ParticipantSnapshot
    other_participant_last_seen: Optional[datetime]
    last_message_preview: str
    last_message_sender_id: Optional[str]
    last_activity: datetime
    is_unread: bool
    unread_count: int
    is_deleted_for_user: bool

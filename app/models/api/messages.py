from datetime import datetime
from typing import List
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

MAX_MESSAGE_LENGTH = 4000


class SendMessageRequest(BaseModel):
    """Request model for sending a chat message."""

    text: str = Field(
        ..., max_length=MAX_MESSAGE_LENGTH, description="Message content"
    )


class MessageResponse(BaseModel):
    """Response model for message data."""

    id: UUID
    room_id: str
    sender_id: str
    text: str
    timestamp: datetime
    read_by: List[str]
    is_deleted: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class UserProfileRequest(BaseModel):
    """Request model for creating or updating the caller's profile."""

    name: str = Field(..., min_length=1, max_length=255, description="Display name")
    avatar_url: str = Field(default="", max_length=1024, description="Avatar URL")
    role: Literal["member", "trainer"] = Field(
        default="member", description="Account role"
    )


class UserResponse(BaseModel):
    """Response model for user profile data."""

    id: str
    name: str
    avatar_url: str
    role: str  # 'member' or 'trainer'
    last_seen: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class HeartbeatRequest(BaseModel):
    """Request model for a presence heartbeat."""

    reason: Literal["interaction", "visibility", "connect"] = Field(
        default="interaction", description="What triggered the heartbeat"
    )


class ParticipantStatusResponse(BaseModel):
    """Presence of a user, derived from the profile's last_seen."""

    user_id: str
    last_seen: Optional[datetime]
    last_seen_text: Optional[str]  # e.g. 'last seen 5 minutes ago'


class HeartbeatResponse(BaseModel):
    """Response model for a presence heartbeat."""

    recorded: bool
    status: ParticipantStatusResponse

import logging
import os
from datetime import datetime
from typing import Optional

from dotenv import load_dotenv
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app import timeutils
from app.models.api.users import ParticipantStatusResponse
from app.realtime.hub import SubscriptionHub, hub, presence_topic
from app.repositories.user_repository import UserRepository

load_dotenv()

logger = logging.getLogger(__name__)

PRESENCE_THROTTLE_SECONDS = float(os.getenv("PRESENCE_THROTTLE_SECONDS", "60"))


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"


def describe_last_seen(last_seen: Optional[datetime], now: datetime) -> Optional[str]:
    """Render a last-seen timestamp as 'last seen 5 minutes ago'."""
    if last_seen is None:
        return None

    seconds = max(0, int((now - last_seen).total_seconds()))
    if seconds < 60:
        return "last seen just now"

    minutes = seconds // 60
    if minutes < 60:
        return f"last seen {_plural(minutes, 'minute')} ago"

    hours = minutes // 60
    if hours < 24:
        return f"last seen {_plural(hours, 'hour')} ago"

    days = hours // 24
    if days < 30:
        return f"last seen {_plural(days, 'day')} ago"

    months = days // 30
    if months < 12:
        return f"last seen {_plural(months, 'month')} ago"

    return f"last seen {_plural(days // 365, 'year')} ago"


class PresenceService:
    """Service for last-seen tracking of members and trainers."""

    def __init__(
        self,
        db: AsyncSession,
        event_hub: SubscriptionHub = hub,
        throttle_seconds: float = PRESENCE_THROTTLE_SECONDS,
    ):
        self.db = db
        self.hub = event_hub
        self.throttle_seconds = throttle_seconds
        self.user_repo = UserRepository(db)

    async def record_activity(self, user_id: str, reason: str = "interaction") -> bool:
        """
        Record that the user is active:

        1. Skip the write if the last one is inside the throttle window
        2. Otherwise store now as last_seen and notify watchers
        """
        seen_at = timeutils.utcnow()
        written = await self.user_repo.touch_last_seen(
            user_id, seen_at, self.throttle_seconds
        )
        if written is None:
            raise HTTPException(status_code=404, detail="User profile not found")
        if not written:
            return False

        logger.debug("Presence of %s updated (%s)", user_id, reason)
        self.hub.publish(presence_topic(user_id))
        return True

    async def get_status(self, user_id: str) -> ParticipantStatusResponse:
        """Get the presence of a user as other participants see it."""
        user = await self.user_repo.get_by_id(user_id)
        if not user:
            raise HTTPException(status_code=404, detail="User profile not found")

        return ParticipantStatusResponse(
            user_id=user.id,
            last_seen=user.last_seen,
            last_seen_text=describe_last_seen(user.last_seen, timeutils.utcnow()),
        )

from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.models.api.users import UserProfileRequest, UserResponse
from app.models.db.user_model import UserModel
from app.repositories.base_repository import BaseRepository
from app.timeutils import as_utc, as_utc_or_none, utcnow


class UserRepository(BaseRepository[UserModel, UserResponse]):
    """Repository for member and trainer profiles."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, UserModel)

    async def get_many(self, user_ids: List[str]) -> List[UserResponse]:
        """Get the profiles for a set of user ids (missing ids are skipped)."""
        if not user_ids:
            return []
        query = select(self.model_class).where(self.model_class.id.in_(user_ids))
        result = await self.db.execute(query)
        return [self._to_pydantic(db_model) for db_model in result.scalars().all()]

    async def upsert_profile(
        self, user_id: str, profile: UserProfileRequest
    ) -> UserResponse:
        """Create the profile for a user or overwrite its display fields."""
        db_model = await self._get_model(user_id)
        now = utcnow()

        if db_model is None:
            db_model = UserModel(
                id=user_id,
                name=profile.name,
                avatar_url=profile.avatar_url,
                role=profile.role,
                created_at=now,
                updated_at=now,
            )
            self.db.add(db_model)
        else:
            db_model.name = profile.name
            db_model.avatar_url = profile.avatar_url
            db_model.role = profile.role
            db_model.updated_at = now

        await self.db.commit()
        await self.db.refresh(db_model)
        return self._to_pydantic(db_model)

    async def touch_last_seen(
        self, user_id: str, seen_at: datetime, min_interval_seconds: float
    ) -> Optional[bool]:
        """Write last_seen unless the previous write is too recent.

        Returns None when the user has no profile, otherwise whether the
        timestamp was written.
        """
        db_model = await self._get_model(user_id)
        if db_model is None:
            return None

        previous = as_utc_or_none(db_model.last_seen)
        if (
            previous is not None
            and (seen_at - previous).total_seconds() < min_interval_seconds
        ):
            return False

        db_model.last_seen = seen_at
        await self.db.commit()
        return True

    def _to_pydantic(self, db_model: Any) -> UserResponse:
        """Convert SQLAlchemy UserModel to Pydantic UserResponse."""
        return UserResponse(
            id=db_model.id,
            name=db_model.name,
            avatar_url=db_model.avatar_url or "",
            role=db_model.role,
            last_seen=as_utc_or_none(db_model.last_seen),
            created_at=as_utc(db_model.created_at),
            updated_at=as_utc(db_model.updated_at),
        )

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.api.users import UserProfileRequest, UserResponse
from app.repositories.user_repository import UserRepository


class UserProfileService:
    """Service for the profiles that feed participant snapshots."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.user_repo = UserRepository(db)

    async def upsert_profile(
        self, user_id: str, request: UserProfileRequest
    ) -> UserResponse:
        """Create or update the caller's own profile"""
        name = request.name.strip()
        if not name:
            raise ValueError("Name must not be blank")
        return await self.user_repo.upsert_profile(
            user_id, request.model_copy(update={"name": name})
        )

    async def get_profile(self, user_id: str) -> UserResponse:
        """Get a profile by user id"""
        user = await self.user_repo.get_by_id(user_id)
        if not user:
            raise HTTPException(status_code=404, detail="User profile not found")
        return user

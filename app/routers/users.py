import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import get_current_user_id
from app.database import get_db
from app.models.api.users import (
    HeartbeatRequest,
    HeartbeatResponse,
    ParticipantStatusResponse,
    UserProfileRequest,
    UserResponse,
)
from app.services.presence_service import PresenceService
from app.services.user_profile_service import UserProfileService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.put("/me", response_model=UserResponse)
async def upsert_my_profile(
    request: UserProfileRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    """Create or update the caller's member/trainer profile."""
    try:
        service = UserProfileService(db)
        return await service.upsert_profile(user_id, request)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception:
        logger.exception("Failed to save profile of %s", user_id)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/me", response_model=UserResponse)
async def get_my_profile(
    user_id: str = Depends(get_current_user_id), db: AsyncSession = Depends(get_db)
) -> UserResponse:
    """Get the caller's profile."""
    try:
        service = UserProfileService(db)
        return await service.get_profile(user_id)
    except HTTPException:
        raise
    except Exception:
        logger.exception("Failed to load profile of %s", user_id)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/me/heartbeat", response_model=HeartbeatResponse)
async def heartbeat(
    request: HeartbeatRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> HeartbeatResponse:
    """
    Report user activity (interaction or tab becoming visible).

    Writes are throttled; `recorded` is false when the previous write is
    recent enough.
    """
    try:
        service = PresenceService(db)
        recorded = await service.record_activity(user_id, reason=request.reason)
        status = await service.get_status(user_id)
        return HeartbeatResponse(recorded=recorded, status=status)
    except HTTPException:
        raise
    except Exception:
        logger.exception("Failed to record presence of %s", user_id)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/{user_id}", response_model=UserResponse)
async def get_profile(
    user_id: str,
    _: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    """Get a member or trainer profile."""
    try:
        service = UserProfileService(db)
        return await service.get_profile(user_id)
    except HTTPException:
        raise
    except Exception:
        logger.exception("Failed to load profile of %s", user_id)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/{user_id}/status", response_model=ParticipantStatusResponse)
async def get_status(
    user_id: str,
    _: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> ParticipantStatusResponse:
    """Get 'last seen' presence of a user."""
    try:
        service = PresenceService(db)
        return await service.get_status(user_id)
    except HTTPException:
        raise
    except Exception:
        logger.exception("Failed to load presence of %s", user_id)
        raise HTTPException(status_code=500, detail="Internal server error")

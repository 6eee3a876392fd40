import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import get_current_user_id
from app.database import get_db
from app.models.api.chat_rooms import (
    ChatRoomResponse,
    ChatRoomSummaryResponse,
    CreateChatRoomRequest,
)
from app.services.create_chat_room_service import CreateChatRoomService
from app.services.delete_chat_service import DeleteChatService
from app.services.list_chat_rooms_service import ListChatRoomsService
from app.services.mark_read_service import MarkReadService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=List[ChatRoomSummaryResponse])
async def list_chat_rooms(
    current_room_id: Optional[str] = Query(
        None, description="Room being viewed; listed even if cleared"
    ),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> List[ChatRoomSummaryResponse]:
    """
    List the caller's chat rooms, most recent activity first.

    Query parameters:
    - current_room_id: keep this room in the list even if the caller cleared it
    """
    try:
        service = ListChatRoomsService(db)
        return await service.list_rooms(user_id, current_room_id=current_room_id)
    except Exception:
        logger.exception("Failed to list chat rooms of %s", user_id)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("", response_model=ChatRoomResponse)
async def open_chat_room(
    request: CreateChatRoomRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> ChatRoomResponse:
    """Open the chat room with another user, creating it on first contact."""
    try:
        service = CreateChatRoomService(db)
        return await service.create_or_get(user_id, request.participant_id)
    except HTTPException:
        raise
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception:
        logger.exception("Failed to open chat room for %s", user_id)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/{room_id}", response_model=ChatRoomResponse)
async def get_chat_room(
    room_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> ChatRoomResponse:
    """
    Get a chat room the caller participates in.

    Path parameters:
    - room_id: id of the chat room
    """
    try:
        service = ListChatRoomsService(db)
        return await service.get_room(room_id, user_id)
    except HTTPException:
        raise
    except Exception:
        logger.exception("Failed to load chat room %s", room_id)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.delete("/{room_id}", response_model=ChatRoomResponse)
async def delete_chat_room(
    room_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> ChatRoomResponse:
    """Clear the chat for the caller only; the other participant keeps it."""
    try:
        service = DeleteChatService(db)
        return await service.delete_chat_for_user(room_id, user_id)
    except HTTPException:
        raise
    except Exception:
        logger.exception("Failed to delete chat room %s for %s", room_id, user_id)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/{room_id}/read")
async def mark_chat_room_read(
    room_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Mark the room and its visible messages read by the caller."""
    try:
        service = MarkReadService(db)
        changed = await service.mark_room_read(room_id, user_id)
        return {"room_id": room_id, "changed": changed}
    except HTTPException:
        raise
    except Exception:
        logger.exception("Failed to mark chat room %s read", room_id)
        raise HTTPException(status_code=500, detail="Internal server error")

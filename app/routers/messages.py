import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import get_current_user_id
from app.database import get_db
from app.models.api.messages import MessageResponse, SendMessageRequest
from app.services.delete_message_service import DeleteMessageService
from app.services.get_room_messages_service import GetRoomMessagesService
from app.services.send_message_service import SendMessageService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=List[MessageResponse])
async def get_room_messages(
    room_id: str,
    mark_read: bool = Query(
        True, description="Mark the returned messages read by the caller"
    ),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> List[MessageResponse]:
    """
    Get the messages of a room, oldest first.

    Messages up to the caller's own delete marker are not returned.
    """
    try:
        service = GetRoomMessagesService(db)
        return await service.get_room_messages(room_id, user_id, mark_read=mark_read)
    except HTTPException:
        raise
    except Exception:
        logger.exception("Failed to load messages of room %s", room_id)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("", response_model=MessageResponse, status_code=201)
async def send_message(
    room_id: str,
    request: SendMessageRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """Send a message to the room."""
    try:
        service = SendMessageService(db)
        return await service.send_message(room_id, user_id, request)
    except HTTPException:
        raise
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception:
        logger.exception("Failed to send message to room %s", room_id)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.delete("/{message_id}", response_model=MessageResponse)
async def delete_message(
    room_id: str,
    message_id: UUID,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """Delete one of the caller's own messages (the text is replaced)."""
    try:
        service = DeleteMessageService(db)
        return await service.delete_message(room_id, message_id, user_id)
    except HTTPException:
        raise
    except Exception:
        logger.exception("Failed to delete message %s", message_id)
        raise HTTPException(status_code=500, detail="Internal server error")

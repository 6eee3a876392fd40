"""Live chat streams over WebSocket.

Each socket holds one hub subscription. A reader task handles client frames
while a writer task re-reads state and pushes a snapshot whenever a subscribed
topic changes. Closing the socket cancels the subscription.
"""

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect, status

from app import database
from app.auth import authenticate_token
from app.realtime.hub import (
    Subscription,
    hub,
    presence_topic,
    room_topic,
    rooms_topic,
)
from app.services import chat_visibility
from app.services.get_room_messages_service import GetRoomMessagesService
from app.services.list_chat_rooms_service import ListChatRoomsService
from app.services.presence_service import PresenceService

logger = logging.getLogger(__name__)

router = APIRouter()

FrameHandler = Callable[[Dict[str, Any]], Awaitable[None]]
EventHandler = Callable[[Optional[str]], Awaitable[None]]


class _Sender:
    """Serializes writes to one socket from the reader and writer tasks."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self._lock = asyncio.Lock()

    async def send(self, frame: Dict[str, Any]) -> None:
        async with self._lock:
            await self.websocket.send_json(frame)

    async def error(self, detail: str) -> None:
        await self.send({"type": "error", "detail": detail})


async def _record_activity(sender: _Sender, user_id: str) -> None:
    try:
        async with database.AsyncSessionLocal() as db:
            await PresenceService(db).record_activity(user_id, reason="interaction")
    except HTTPException as e:
        await sender.error(str(e.detail))
    except Exception:
        logger.exception("Failed to record presence of %s", user_id)
        await sender.error("Could not update presence")


async def _receive_frame(
    websocket: WebSocket, sender: _Sender
) -> Optional[Dict[str, Any]]:
    """Read one client frame; None when it was rejected with an error frame."""
    message = await websocket.receive()
    if message["type"] == "websocket.disconnect":
        raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))

    text = message.get("text")
    if text is None:
        await sender.error("Frames must be JSON text")
        return None
    try:
        frame = json.loads(text)
    except ValueError:
        await sender.error("Frames must be JSON objects")
        return None
    if not isinstance(frame, dict):
        await sender.error("Frames must be JSON objects")
        return None
    return frame


async def _pump(
    websocket: WebSocket,
    subscription: Subscription,
    sender: _Sender,
    on_frame: FrameHandler,
    on_event: EventHandler,
) -> None:
    """Run the reader and writer until the client leaves or the hub cancels."""

    async def reader() -> None:
        while True:
            frame = await _receive_frame(websocket, sender)
            if frame is not None:
                await on_frame(frame)

    async def writer() -> None:
        while True:
            topic = await subscription.next_event()
            if topic is None:
                return
            await on_event(topic)

    tasks = [asyncio.create_task(reader()), asyncio.create_task(writer())]
    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
    finally:
        # Also runs when the stream itself is cancelled mid-wait
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    for task in done:
        if task.cancelled():
            continue
        error = task.exception()
        if error is not None and not isinstance(error, WebSocketDisconnect):
            raise error


@router.websocket("/rooms")
async def rooms_stream(
    websocket: WebSocket,
    token: Optional[str] = None,
    current_room_id: Optional[str] = None,
) -> None:
    """
    Live room directory of the caller.

    Server frames:
    - {"type": "rooms", "rooms": [...]} after every change
    - {"type": "error", "detail": "..."} when a refresh fails

    Client frames:
    - {"type": "select_room", "room_id": "..." | null}
    - {"type": "activity"}
    """
    user_id = authenticate_token(token)
    if user_id is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    sender = _Sender(websocket)
    subscription = hub.subscribe([rooms_topic(user_id)])
    selected = {"room_id": current_room_id}

    async def refresh(_: Optional[str]) -> None:
        try:
            async with database.AsyncSessionLocal() as db:
                rooms = await ListChatRoomsService(db).list_rooms(
                    user_id, current_room_id=selected["room_id"]
                )
        except Exception:
            logger.exception("Failed to refresh chat rooms of %s", user_id)
            await sender.error("Could not load chat rooms")
            return

        # Follow presence of everyone currently listed
        hub.retarget(
            subscription,
            [rooms_topic(user_id)]
            + [presence_topic(room.other_participant_id) for room in rooms],
        )
        await sender.send(
            {"type": "rooms", "rooms": [room.model_dump(mode="json") for room in rooms]}
        )

    async def handle(frame: Dict[str, Any]) -> None:
        frame_type = frame.get("type")
        if frame_type == "select_room":
            selected["room_id"] = frame.get("room_id") or None
            subscription.notify(rooms_topic(user_id))
        elif frame_type == "activity":
            await _record_activity(sender, user_id)
        else:
            await sender.error(f"Unknown frame type: {frame_type}")

    logger.info("Rooms stream opened for %s", user_id)
    try:
        await refresh(None)
        await _pump(websocket, subscription, sender, handle, refresh)
    except WebSocketDisconnect:
        pass
    finally:
        subscription.cancel()
        logger.info("Rooms stream closed for %s", user_id)


@router.websocket("/rooms/{room_id}")
async def room_stream(
    websocket: WebSocket, room_id: str, token: Optional[str] = None
) -> None:
    """
    Live message list of one room. Messages are marked read as they are pushed.

    Server frames:
    - {"type": "messages", "room_id": "...", "messages": [...]}
    - {"type": "presence", "status": {...}} for the other participant
    - {"type": "error", "detail": "..."}

    Client frames:
    - {"type": "activity"}
    """
    user_id = authenticate_token(token)
    if user_id is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    try:
        async with database.AsyncSessionLocal() as db:
            room = await ListChatRoomsService(db).get_room(room_id, user_id)
    except HTTPException as e:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=str(e.detail))
        return

    other_id = chat_visibility.other_participant_id(room, user_id)
    topics = [room_topic(room.id)]
    if other_id:
        topics.append(presence_topic(other_id))

    await websocket.accept()
    sender = _Sender(websocket)
    subscription = hub.subscribe(topics)

    async def push_messages() -> None:
        try:
            async with database.AsyncSessionLocal() as db:
                messages = await GetRoomMessagesService(db).get_room_messages(
                    room.id, user_id, mark_read=True
                )
        except Exception:
            logger.exception("Failed to refresh messages of room %s", room.id)
            await sender.error("Could not load messages")
            return
        await sender.send(
            {
                "type": "messages",
                "room_id": room.id,
                "messages": [message.model_dump(mode="json") for message in messages],
            }
        )

    async def push_presence() -> None:
        if not other_id:
            return
        try:
            async with database.AsyncSessionLocal() as db:
                presence = await PresenceService(db).get_status(other_id)
        except HTTPException:
            # No profile, nothing to show
            return
        except Exception:
            logger.exception("Failed to load presence of %s", other_id)
            return
        await sender.send({"type": "presence", "status": presence.model_dump(mode="json")})

    async def refresh(topic: Optional[str]) -> None:
        if topic is None or topic == room_topic(room.id):
            await push_messages()
        if topic is None or (other_id and topic == presence_topic(other_id)):
            await push_presence()

    async def handle(frame: Dict[str, Any]) -> None:
        frame_type = frame.get("type")
        if frame_type == "activity":
            await _record_activity(sender, user_id)
        else:
            await sender.error(f"Unknown frame type: {frame_type}")

    logger.info("Room stream %s opened for %s", room.id, user_id)
    try:
        await refresh(None)
        await _pump(websocket, subscription, sender, handle, refresh)
    except WebSocketDisconnect:
        pass
    finally:
        subscription.cancel()
        logger.info("Room stream %s closed for %s", room.id, user_id)

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from app.models.api.chat_rooms import (
    ChatRoomResponse,
    ChatRoomSummaryResponse,
    ParticipantSnapshot,
)
CALLER_ID = "member-1"  # identity injected by the auth_client fixture


@pytest.fixture
def sample_room() -> ChatRoomResponse:
    now = datetime.now(timezone.utc)
    return ChatRoomResponse(
        id="member-1_trainer-9",
        participant_ids=["member-1", "trainer-9"],
        participants={
            "member-1": ParticipantSnapshot(name="Alex", avatar_url="", role="member"),
            "trainer-9": ParticipantSnapshot(name="Sam", avatar_url="", role="trainer"),
        },
        last_message="See you at 6",
        last_message_sender_id="trainer-9",
        last_message_timestamp=now,
        read_by=["trainer-9"],
        deleted_by={},
        created_at=now,
        updated_at=now,
    )


@pytest.fixture
def sample_summary() -> ChatRoomSummaryResponse:
    now = datetime.now(timezone.utc)
    return ChatRoomSummaryResponse(
        id="member-1_trainer-9",
        other_participant_id="trainer-9",
        other_participant=ParticipantSnapshot(name="Sam", avatar_url="", role="trainer"),
        other_participant_last_seen=None,
        last_message_preview="See you at 6",
        last_message_sender_id="trainer-9",
        last_activity=now,
        is_unread=True,
        unread_count=1,
        is_deleted_for_user=False,
    )


class TestChatRoomsRouter:
    """Unit tests for the chat rooms router endpoints."""

    def test_list_rooms(
        self, auth_client: TestClient, sample_summary: ChatRoomSummaryResponse
    ) -> None:
        """Test the directory passes the caller and the open room through."""
        with patch("app.routers.chat_rooms.ListChatRoomsService") as mock_service_class:
            mock_service = MagicMock()
            mock_service.list_rooms = AsyncMock(return_value=[sample_summary])
            mock_service_class.return_value = mock_service

            response = auth_client.get(
                "/api/rooms", params={"current_room_id": "member-1_trainer-9"}
            )

        assert response.status_code == 200
        data = response.json()
        assert data[0]["other_participant"]["name"] == "Sam"
        assert data[0]["unread_count"] == 1
        mock_service.list_rooms.assert_awaited_once_with(
            CALLER_ID, current_room_id="member-1_trainer-9"
        )

    def test_list_rooms_internal_error(self, auth_client: TestClient) -> None:
        """Test unexpected failures are reported as 500."""
        with patch("app.routers.chat_rooms.ListChatRoomsService") as mock_service_class:
            mock_service = MagicMock()
            mock_service.list_rooms = AsyncMock(side_effect=RuntimeError("db down"))
            mock_service_class.return_value = mock_service

            response = auth_client.get("/api/rooms")

        assert response.status_code == 500
        assert response.json()["detail"] == "Internal server error"

    def test_open_room(
        self, auth_client: TestClient, sample_room: ChatRoomResponse
    ) -> None:
        with patch(
            "app.routers.chat_rooms.CreateChatRoomService"
        ) as mock_service_class:
            mock_service = MagicMock()
            mock_service.create_or_get = AsyncMock(return_value=sample_room)
            mock_service_class.return_value = mock_service

            response = auth_client.post(
                "/api/rooms", json={"participant_id": "trainer-9"}
            )

        assert response.status_code == 200
        assert response.json()["id"] == "member-1_trainer-9"
        mock_service.create_or_get.assert_awaited_once_with(CALLER_ID, "trainer-9")

    def test_open_room_with_self_is_bad_request(self, auth_client: TestClient) -> None:
        with patch(
            "app.routers.chat_rooms.CreateChatRoomService"
        ) as mock_service_class:
            mock_service = MagicMock()
            mock_service.create_or_get = AsyncMock(
                side_effect=ValueError("You cannot start a chat with yourself")
            )
            mock_service_class.return_value = mock_service

            response = auth_client.post("/api/rooms", json={"participant_id": CALLER_ID})

        assert response.status_code == 400
        assert "yourself" in response.json()["detail"]

    def test_open_room_validation(self, auth_client: TestClient) -> None:
        response = auth_client.post("/api/rooms", json={})
        assert response.status_code == 422

    def test_get_room_forbidden(self, auth_client: TestClient) -> None:
        with patch("app.routers.chat_rooms.ListChatRoomsService") as mock_service_class:
            mock_service = MagicMock()
            mock_service.get_room = AsyncMock(
                side_effect=HTTPException(
                    status_code=403, detail="You are not a participant in this chat room"
                )
            )
            mock_service_class.return_value = mock_service

            response = auth_client.get("/api/rooms/a_b")

        assert response.status_code == 403

    def test_delete_room_for_caller(
        self, auth_client: TestClient, sample_room: ChatRoomResponse
    ) -> None:
        cleared = sample_room.model_copy(
            update={"deleted_by": {CALLER_ID: datetime.now(timezone.utc)}}
        )
        with patch("app.routers.chat_rooms.DeleteChatService") as mock_service_class:
            mock_service = MagicMock()
            mock_service.delete_chat_for_user = AsyncMock(return_value=cleared)
            mock_service_class.return_value = mock_service

            response = auth_client.delete(f"/api/rooms/{sample_room.id}")

        assert response.status_code == 200
        assert CALLER_ID in response.json()["deleted_by"]
        mock_service.delete_chat_for_user.assert_awaited_once_with(
            sample_room.id, CALLER_ID
        )

    def test_mark_read(self, auth_client: TestClient) -> None:
        with patch("app.routers.chat_rooms.MarkReadService") as mock_service_class:
            mock_service = MagicMock()
            mock_service.mark_room_read = AsyncMock(return_value=True)
            mock_service_class.return_value = mock_service

            response = auth_client.post("/api/rooms/member-1_trainer-9/read")

        assert response.status_code == 200
        assert response.json() == {"room_id": "member-1_trainer-9", "changed": True}

    def test_wrong_http_method(self, auth_client: TestClient) -> None:
        response = auth_client.put("/api/rooms")
        assert response.status_code == 405

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.api.users import UserProfileRequest
from app.models.db.chat_room_model import ChatRoomModel
from app.models.db.message_model import MessageModel
from app.models.db.participant_model import ParticipantModel
from app.models.db.user_model import UserModel
from app.repositories.chat_room_repository import ChatRoomRepository, room_id_for
from app.repositories.message_repository import MessageRepository
from app.repositories.participant_repository import ParticipantRepository
from app.repositories.user_repository import UserRepository


def make_participant(user_id: str, **overrides) -> MagicMock:
    participant = MagicMock(spec=ParticipantModel)
    participant.user_id = user_id
    participant.name = overrides.get("name", user_id.title())
    participant.avatar_url = overrides.get("avatar_url", None)
    participant.role = overrides.get("role", "member")
    participant.has_read = overrides.get("has_read", False)
    participant.deleted_at = overrides.get("deleted_at", None)
    return participant


class TestRoomId:
    def test_room_id_is_independent_of_argument_order(self) -> None:
        assert room_id_for("trainer-9", "member-1") == "member-1_trainer-9"
        assert room_id_for("member-1", "trainer-9") == "member-1_trainer-9"


class TestChatRoomRepositoryConversion:
    """Unit tests for ChatRoomRepository model conversion."""

    def test_to_pydantic_projects_participant_rows(self, mock_db) -> None:
        repo = ChatRoomRepository(mock_db)
        marker = datetime(2024, 3, 1, 9, 0)  # naive, as sqlite returns it

        db_model = MagicMock(spec=ChatRoomModel)
        db_model.id = "a_b"
        db_model.last_message = None
        db_model.last_message_sender_id = None
        db_model.last_message_timestamp = None
        db_model.created_at = datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)
        db_model.updated_at = None
        db_model.participants = [
            make_participant("b", role="trainer", deleted_at=marker),
            make_participant("a", has_read=True),
        ]

        room = repo._to_pydantic(db_model)

        assert room.participant_ids == ["a", "b"]
        assert room.participants["b"].role == "trainer"
        assert room.participants["a"].avatar_url == ""
        assert room.last_message == ""
        assert room.read_by == ["a"]
        assert room.deleted_by == {"b": marker.replace(tzinfo=timezone.utc)}
        # Missing timestamps default rather than fail
        assert room.updated_at.tzinfo is not None


class TestMessageRepositoryConversion:
    """Unit tests for MessageRepository model conversion."""

    def test_to_pydantic_normalizes_timestamps(self, mock_db) -> None:
        repo = MessageRepository(mock_db)
        db_model = MagicMock(spec=MessageModel)
        db_model.id = uuid4()
        db_model.room_id = "a_b"
        db_model.sender_id = "a"
        db_model.text = "Leg day tomorrow?"
        db_model.timestamp = datetime(2024, 3, 1, 10, 0)
        db_model.read_by = None
        db_model.is_deleted = None
        db_model.created_at = None
        db_model.updated_at = None

        message = repo._to_pydantic(db_model)

        assert message.timestamp == datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)
        assert message.created_at == message.timestamp
        assert message.read_by == []
        assert message.is_deleted is False


class TestUserRepositoryConversion:
    """Unit tests for UserRepository model conversion."""

    def test_to_pydantic_defaults(self, mock_db) -> None:
        repo = UserRepository(mock_db)
        db_model = UserModel(
            id="trainer-9",
            name="Sam Coach",
            avatar_url=None,
            role="trainer",
            last_seen=datetime(2024, 3, 1, 9, 0),
            created_at=datetime.now(timezone.utc),
            updated_at=datetime.now(timezone.utc),
        )

        user = repo._to_pydantic(db_model)

        assert user.avatar_url == ""
        assert user.last_seen == datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


class TestRepositoriesWithDatabase:
    """Repository behavior against an in-memory database."""

    @pytest.fixture
    async def profiles(self, test_db: AsyncSession):
        users = UserRepository(test_db)
        member = await users.upsert_profile(
            "member-1", UserProfileRequest(name="Alex Member")
        )
        trainer = await users.upsert_profile(
            "trainer-9", UserProfileRequest(name="Sam Coach", role="trainer")
        )
        return member, trainer

    @pytest.mark.asyncio
    async def test_upsert_profile_updates_in_place(self, test_db: AsyncSession, profiles) -> None:
        users = UserRepository(test_db)
        updated = await users.upsert_profile(
            "member-1",
            UserProfileRequest(name="Alex M.", avatar_url="https://a/x.png"),
        )

        assert updated.name == "Alex M."
        assert updated.avatar_url == "https://a/x.png"
        assert [u.id for u in await users.get_many(["member-1", "ghost"])] == [
            "member-1"
        ]

    @pytest.mark.asyncio
    async def test_touch_last_seen_is_throttled(self, test_db: AsyncSession, profiles) -> None:
        users = UserRepository(test_db)
        seen_at = datetime.now(timezone.utc)

        assert await users.touch_last_seen("ghost", seen_at, 60) is None
        assert await users.touch_last_seen("member-1", seen_at, 60) is True
        assert (
            await users.touch_last_seen("member-1", seen_at + timedelta(seconds=30), 60)
            is False
        )
        assert (
            await users.touch_last_seen("member-1", seen_at + timedelta(seconds=61), 60)
            is True
        )

    @pytest.mark.asyncio
    async def test_create_and_list_rooms(self, test_db: AsyncSession, profiles) -> None:
        rooms = ChatRoomRepository(test_db)
        room = await rooms.create_for_pair("member-1_trainer-9", list(profiles))

        assert room.participant_ids == ["member-1", "trainer-9"]
        assert room.participants["trainer-9"].name == "Sam Coach"
        assert room.read_by == []
        assert room.deleted_by == {}

        assert [r.id for r in await rooms.list_for_user("trainer-9")] == [room.id]
        assert await rooms.list_for_user("someone-else") == []

    @pytest.mark.asyncio
    async def test_record_message_resets_read_state(self, test_db: AsyncSession, profiles) -> None:
        rooms = ChatRoomRepository(test_db)
        participants = ParticipantRepository(test_db)
        room = await rooms.create_for_pair("member-1_trainer-9", list(profiles))
        assert await participants.mark_read(room.id, "trainer-9") is True
        assert await participants.mark_read(room.id, "trainer-9") is False

        sent_at = datetime.now(timezone.utc)
        updated = await rooms.record_message(room.id, "Hello", "member-1", sent_at)

        assert updated.read_by == ["member-1"]
        assert updated.last_message == "Hello"
        assert updated.last_message_timestamp == sent_at

    @pytest.mark.asyncio
    async def test_delete_marker_is_per_user(self, test_db: AsyncSession, profiles) -> None:
        rooms = ChatRoomRepository(test_db)
        participants = ParticipantRepository(test_db)
        room = await rooms.create_for_pair("member-1_trainer-9", list(profiles))
        marker = datetime.now(timezone.utc)

        assert await participants.set_deleted_at(room.id, "member-1", marker) is True
        assert await participants.set_deleted_at(room.id, "ghost", marker) is False

        reloaded = await rooms.get_by_id(room.id)
        assert list(reloaded.deleted_by) == ["member-1"]

    @pytest.mark.asyncio
    async def test_add_reader_skips_hidden_and_own_messages(
        self, test_db: AsyncSession, profiles
    ) -> None:
        rooms = ChatRoomRepository(test_db)
        messages = MessageRepository(test_db)
        room = await rooms.create_for_pair("member-1_trainer-9", list(profiles))
        base = datetime.now(timezone.utc)

        old = await messages.create_message(room.id, "trainer-9", "old", base)
        new = await messages.create_message(
            room.id, "trainer-9", "new", base + timedelta(seconds=10)
        )
        own = await messages.create_message(
            room.id, "member-1", "mine", base + timedelta(seconds=20)
        )

        changed = await messages.add_reader(
            room.id, "member-1", visible_after=base + timedelta(seconds=5)
        )
        assert changed == 1
        assert await messages.add_reader(room.id, "member-1") == 1  # the old one
        assert await messages.add_reader(room.id, "member-1") == 0

        stored = {m.id: m for m in await messages.get_by_room(room.id)}
        assert stored[old.id].read_by == ["trainer-9", "member-1"]
        assert stored[new.id].read_by == ["trainer-9", "member-1"]
        assert stored[own.id].read_by == ["member-1"]

    @pytest.mark.asyncio
    async def test_messages_ordered_and_received_grouped(
        self, test_db: AsyncSession, profiles
    ) -> None:
        rooms = ChatRoomRepository(test_db)
        messages = MessageRepository(test_db)
        room = await rooms.create_for_pair("member-1_trainer-9", list(profiles))
        base = datetime.now(timezone.utc)

        second = await messages.create_message(
            room.id, "member-1", "second", base + timedelta(seconds=1)
        )
        first = await messages.create_message(room.id, "trainer-9", "first", base)

        assert [m.id for m in await messages.get_by_room(room.id)] == [
            first.id,
            second.id,
        ]
        latest = await messages.get_latest(room.id)
        assert latest.id == second.id

        received = await messages.get_received_by_room([room.id, "empty"], "member-1")
        assert [m.id for m in received[room.id]] == [first.id]
        assert received["empty"] == []

    @pytest.mark.asyncio
    async def test_tombstone_keeps_sender_and_time(
        self, test_db: AsyncSession, profiles
    ) -> None:
        rooms = ChatRoomRepository(test_db)
        messages = MessageRepository(test_db)
        room = await rooms.create_for_pair("member-1_trainer-9", list(profiles))
        message = await messages.create_message(
            room.id, "member-1", "oops", datetime.now(timezone.utc)
        )

        tombstoned = await messages.tombstone(str(message.id), "This message was deleted")

        assert tombstoned.text == "This message was deleted"
        assert tombstoned.is_deleted is True
        assert tombstoned.sender_id == "member-1"
        assert tombstoned.timestamp == message.timestamp
        assert await messages.tombstone(uuid4(), "x") is None

    @pytest.mark.asyncio
    async def test_participant_lookup(self, test_db: AsyncSession, profiles) -> None:
        rooms = ChatRoomRepository(test_db)
        participants = ParticipantRepository(test_db)
        await rooms.create_for_pair("member-1_trainer-9", list(profiles))

        row = await participants.get_participant("member-1_trainer-9", "trainer-9")
        assert row is not None
        assert await participants.get_participant("member-1_trainer-9", "ghost") is None
        assert row.name == "Sam Coach"
        assert row.role == "trainer"

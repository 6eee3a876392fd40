import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship

from app.database import Base
from app.timeutils import utcnow


class ParticipantModel(Base):
    """SQLAlchemy model for chat_participants table.

    One row per (room, user). Besides the display snapshot taken when the
    room was created, the row carries that user's personal room state: the
    read flag and the soft-delete marker.
    """

    __tablename__ = "chat_participants"
    __table_args__ = (
        UniqueConstraint("room_id", "user_id", name="uq_chat_participant_room_user"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    room_id = Column(String(255), ForeignKey("chat_rooms.id"), nullable=False)
    user_id = Column(String(128), ForeignKey("users.id"), nullable=False)
    name = Column(String(255), nullable=False)
    avatar_url = Column(String(1024), nullable=False, default="")
    role = Column(String(10), nullable=False, default="member")
    has_read = Column(Boolean, nullable=False, default=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    # Relationships
    room = relationship("ChatRoomModel", back_populates="participants")

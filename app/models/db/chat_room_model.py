from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.orm import relationship

from app.database import Base
from app.timeutils import utcnow


class ChatRoomModel(Base):
    """SQLAlchemy model for chat_rooms table."""

    __tablename__ = "chat_rooms"

    # Sorted participant ids joined with "_"
    id = Column(String(255), primary_key=True)
    last_message = Column(Text, nullable=False, default="")
    last_message_sender_id = Column(String(128), nullable=True)
    last_message_timestamp = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    messages = relationship(
        "MessageModel", back_populates="room", order_by="MessageModel.timestamp"
    )
    participants = relationship("ParticipantModel", back_populates="room")

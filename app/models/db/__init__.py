# SQLAlchemy database models
from .chat_room_model import ChatRoomModel
from .message_model import MessageModel
from .participant_model import ParticipantModel
from .user_model import UserModel

__all__ = ["ChatRoomModel", "MessageModel", "ParticipantModel", "UserModel"]

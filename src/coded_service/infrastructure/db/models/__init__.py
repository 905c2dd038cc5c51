"""Import all models so Base.metadata sees every table."""
from coded_service.infrastructure.db.models.chat import ChatModel, ChatParticipantModel
from coded_service.infrastructure.db.models.message import MessageModel
from coded_service.infrastructure.db.models.user import UserModel

__all__ = [
    "ChatModel",
    "ChatParticipantModel",
    "MessageModel",
    "UserModel",
]

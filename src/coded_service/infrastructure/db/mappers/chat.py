from __future__ import annotations

from coded_service.domain.entities.chat import Chat
from coded_service.infrastructure.db.models.chat import ChatModel, ChatParticipantModel


def model_to_entity(model: ChatModel) -> Chat:
    return Chat(
        id=model.id,
        participants=tuple(p.user_id for p in model.participants),
        last_message=model.last_message,
        last_message_at=model.last_message_at,
        created_at=model.created_at,
    )


def entity_to_model(entity: Chat) -> ChatModel:
    return ChatModel(
        id=entity.id,
        last_message=entity.last_message,
        last_message_at=entity.last_message_at,
        created_at=entity.created_at,
        participants=[
            ChatParticipantModel(chat_id=entity.id, user_id=user_id, position=i)
            for i, user_id in enumerate(entity.participants)
        ],
    )

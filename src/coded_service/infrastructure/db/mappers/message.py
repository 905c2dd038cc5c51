from __future__ import annotations

from coded_service.domain.entities.message import Message
from coded_service.infrastructure.db.models.message import MessageModel


def model_to_entity(model: MessageModel) -> Message:
    return Message(
        id=model.id,
        chat_id=model.chat_id,
        sender_id=model.sender_id,
        content=model.content,
        type=model.type,
        is_read=model.is_read,
        created_at=model.created_at,
    )


def entity_to_model(entity: Message) -> MessageModel:
    return MessageModel(
        id=entity.id,
        chat_id=entity.chat_id,
        sender_id=entity.sender_id,
        content=entity.content,
        type=entity.type,
        is_read=entity.is_read,
        created_at=entity.created_at,
    )

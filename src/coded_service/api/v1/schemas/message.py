from __future__ import annotations

from uuid import UUID

from pydantic import Field

from coded_service.api.v1.schemas.common import CamelModel
from coded_service.application.dto.message import MessageView
from coded_service.application.ports.clock import to_unix
from coded_service.domain.value_objects.enums import MessageType


class SendMessageRequest(CamelModel):
    chat_id: UUID
    content: str = Field(min_length=1)
    type: MessageType = MessageType.TEXT


class SenderResponse(CamelModel):
    id: str
    name: str
    avatar: str


class MessageResponse(CamelModel):
    id: UUID
    chat_id: UUID
    sender_id: str
    sender: SenderResponse
    content: str
    type: str
    is_read: bool
    created_at: int

    @classmethod
    def from_view(cls, view: MessageView) -> MessageResponse:
        msg, sender = view.message, view.sender
        return cls(
            id=msg.id,
            chat_id=msg.chat_id,
            sender_id=msg.sender_id,
            sender=SenderResponse(id=sender.id, name=sender.name, avatar=sender.avatar),
            content=msg.content,
            type=msg.type,
            is_read=msg.is_read,
            created_at=to_unix(msg.created_at),
        )


class MarkReadRequest(CamelModel):
    message_ids: list[UUID] = []


class MarkReadResponse(CamelModel):
    updated_count: int
    message_ids: list[UUID]

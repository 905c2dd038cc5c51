from __future__ import annotations

from uuid import UUID

from pydantic import Field

from coded_service.api.v1.schemas.common import CamelModel
from coded_service.application.dto.chat import ChatSummary
from coded_service.application.ports.clock import to_unix


class CreateChatRequest(CamelModel):
    participants: list[str] = Field(min_length=1)


class PartnerResponse(CamelModel):
    id: str
    name: str
    avatar: str
    status: str


class ChatResponse(CamelModel):
    id: UUID
    last_message: str | None
    last_message_at: int
    partner: PartnerResponse

    @classmethod
    def from_summary(cls, summary: ChatSummary) -> ChatResponse:
        chat, partner = summary.chat, summary.partner
        return cls(
            id=chat.id,
            last_message=chat.last_message,
            last_message_at=to_unix(chat.last_message_at),
            partner=PartnerResponse(
                id=partner.id,
                name=partner.name,
                avatar=partner.avatar,
                status=partner.status,
            ),
        )

from __future__ import annotations

from fastapi import APIRouter

from coded_service.api.deps import CurrentPrincipal, GatewayDep, UoWDep
from coded_service.api.v1.schemas.message import MessageResponse, SendMessageRequest
from coded_service.services import message_service

router = APIRouter(prefix="/api/v1/messages", tags=["messages"])


@router.post("", response_model=MessageResponse, status_code=201)
async def send_message(
    body: SendMessageRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
    gateway: GatewayDep,
) -> MessageResponse:
    view = await message_service.send_message(
        body.chat_id,
        principal,
        body.content,
        body.type,
        uow,
        gateway,
    )
    return MessageResponse.from_view(view)

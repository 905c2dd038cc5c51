from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Query, Response, status

from coded_service.api.deps import CurrentPrincipal, GatewayDep, UoWDep
from coded_service.api.v1.schemas.chat import ChatResponse, CreateChatRequest
from coded_service.api.v1.schemas.message import (
    MarkReadRequest,
    MarkReadResponse,
    MessageResponse,
)
from coded_service.services import chat_service, message_service, read_state_service

router = APIRouter(prefix="/api/v1/chats", tags=["chats"])


@router.get("", response_model=list[ChatResponse])
async def list_chats(
    principal: CurrentPrincipal,
    uow: UoWDep,
    limit: int = Query(50, ge=1, le=200),
) -> list[ChatResponse]:
    summaries = await chat_service.list_chats(principal, limit, uow)
    return [ChatResponse.from_summary(s) for s in summaries]


@router.post("", response_model=ChatResponse, status_code=status.HTTP_201_CREATED)
async def create_chat(
    body: CreateChatRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
    gateway: GatewayDep,
    response: Response,
) -> ChatResponse:
    summary, created = await chat_service.create_chat(
        principal, body.participants, uow, gateway,
    )
    if not created:
        response.status_code = status.HTTP_200_OK
    return ChatResponse.from_summary(summary)


@router.get("/{chat_id}", response_model=ChatResponse)
async def get_chat(
    chat_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> ChatResponse:
    summary = await chat_service.get_chat(principal, chat_id, uow)
    return ChatResponse.from_summary(summary)


@router.get("/{chat_id}/messages", response_model=list[MessageResponse])
async def list_messages(
    chat_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
    limit: int = Query(200, ge=1, le=500),
) -> list[MessageResponse]:
    views = await message_service.list_messages(chat_id, principal, limit, uow)
    return [MessageResponse.from_view(v) for v in views]


@router.post("/{chat_id}/read", response_model=MarkReadResponse)
async def mark_read(
    chat_id: UUID,
    body: MarkReadRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
    gateway: GatewayDep,
) -> MarkReadResponse:
    updated = await read_state_service.mark_read(
        chat_id, principal, body.message_ids, uow, gateway,
    )
    return MarkReadResponse(updated_count=len(updated), message_ids=updated)

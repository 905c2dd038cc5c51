from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from coded_service.application.dto.chat import ChatSummary
from coded_service.application.dto.events import ChatCreatedPayload, PartnerInfo
from coded_service.application.dto.principal import Principal
from coded_service.application.exceptions import ForbiddenError, NotFoundError, ValidationError
from coded_service.application.policies.permissions import assert_chat_access
from coded_service.application.ports.clock import to_unix
from coded_service.application.ports.delivery import DeliveryGateway
from coded_service.application.uow import UnitOfWork
from coded_service.domain.entities.chat import Chat
from coded_service.domain.entities.user import UserProfile

logger = logging.getLogger(__name__)


def _participant_set(principal: Principal, others: list[str]) -> list[str]:
    participants = [principal.user_id]
    for user_id in others:
        user_id = user_id.strip()
        if user_id and user_id not in participants:
            participants.append(user_id)
    return participants


async def _partner_profile(chat: Chat, user_id: str, uow: UnitOfWork) -> UserProfile:
    partner_id = chat.partner_of(user_id)
    if partner_id is None:
        return UserProfile.unknown()
    profiles = await uow.users.get_profiles([partner_id])
    return profiles.get(partner_id) or UserProfile.unknown(partner_id)


async def create_chat(
    principal: Principal,
    participant_ids: list[str],
    uow: UnitOfWork,
    gateway: DeliveryGateway,
) -> tuple[ChatSummary, bool]:
    """Return the chat between the caller and ``participant_ids``, creating it if needed.

    Returns (summary, created). Only a newly stored chat is announced.
    """
    participants = _participant_set(principal, participant_ids)
    if len(participants) < 2:
        raise ValidationError("Chat must have at least two participants")

    existing = await uow.chats.find_by_participants(participants)
    if existing is not None:
        partner = await _partner_profile(existing, principal.user_id, uow)
        return ChatSummary(chat=existing, partner=partner), False

    now = datetime.now(timezone.utc)
    chat = await uow.chats_w.create(
        Chat(
            id=uuid.uuid4(),
            participants=tuple(participants),
            last_message=None,
            last_message_at=now,
            created_at=now,
        )
    )
    await uow.commit()
    logger.info("Chat %s created by %s", chat.id, principal.user_id)

    partner = await _partner_profile(chat, principal.user_id, uow)
    await gateway.broadcast_chat_created(
        ChatCreatedPayload(
            id=str(chat.id),
            last_message_at=to_unix(chat.last_message_at),
            partner=PartnerInfo(
                id=partner.id,
                name=partner.name,
                avatar=partner.avatar,
                status=partner.status,
            ),
        )
    )
    return ChatSummary(chat=chat, partner=partner), True


async def list_chats(
    principal: Principal,
    limit: int,
    uow: UnitOfWork,
) -> list[ChatSummary]:
    chats = await uow.chats.list_for_user(principal.user_id, limit=limit)
    partner_ids = sorted({p for c in chats if (p := c.partner_of(principal.user_id))})
    profiles = await uow.users.get_profiles(partner_ids)

    summaries: list[ChatSummary] = []
    for chat in chats:
        partner_id = chat.partner_of(principal.user_id)
        partner = profiles.get(partner_id) if partner_id else None
        summaries.append(
            ChatSummary(chat=chat, partner=partner or UserProfile.unknown(partner_id or "")),
        )
    return summaries


async def get_chat(
    principal: Principal,
    chat_id: uuid.UUID,
    uow: UnitOfWork,
) -> ChatSummary:
    """One chat with the caller's partner card.

    A chat the caller is not part of is reported as missing.
    """
    chat = await uow.chats.get_by_id(chat_id)
    try:
        chat = await assert_chat_access(principal, chat, uow.chats)
    except ForbiddenError as exc:
        raise NotFoundError("Chat not found") from exc

    partner = await _partner_profile(chat, principal.user_id, uow)
    return ChatSummary(chat=chat, partner=partner)

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from coded_service.application.dto.events import NewMessagePayload, SenderInfo
from coded_service.application.dto.message import MessageView
from coded_service.application.dto.principal import Principal
from coded_service.application.policies.permissions import assert_chat_access
from coded_service.application.ports.clock import to_unix
from coded_service.application.ports.delivery import DeliveryGateway
from coded_service.application.uow import UnitOfWork
from coded_service.domain.entities.message import Message
from coded_service.domain.entities.user import UserProfile
from coded_service.domain.value_objects.enums import MessageType


async def send_message(
    chat_id: uuid.UUID,
    principal: Principal,
    content: str,
    msg_type: MessageType,
    uow: UnitOfWork,
    gateway: DeliveryGateway,
) -> MessageView:
    """Store a message, then announce it to connected clients.

    The broadcast happens only after the commit, so a crash in between loses
    the live notification but never announces a message that was not stored.
    """
    chat = await uow.chats.get_by_id(chat_id)
    await assert_chat_access(principal, chat, uow.chats)

    now = datetime.now(timezone.utc)
    msg = Message(
        id=uuid.uuid4(),
        chat_id=chat_id,
        sender_id=principal.user_id,
        content=content,
        type=msg_type.value,
        is_read=False,
        created_at=now,
    )
    msg = await uow.messages_w.add(msg)
    await uow.chats_w.touch_last_message(chat_id, content, msg.created_at)
    await uow.commit()

    profiles = await uow.users.get_profiles([principal.user_id])
    sender = profiles.get(principal.user_id) or UserProfile.unknown(principal.user_id)

    await gateway.broadcast_new_message(
        NewMessagePayload(
            id=str(msg.id),
            chat_id=str(msg.chat_id),
            sender_id=msg.sender_id,
            sender=SenderInfo(id=sender.id, name=sender.name, avatar=sender.avatar),
            content=msg.content,
            type=msg.type,
            is_read=msg.is_read,
            created_at=to_unix(msg.created_at),
        )
    )
    return MessageView(message=msg, sender=sender)


async def list_messages(
    chat_id: uuid.UUID,
    principal: Principal,
    limit: int,
    uow: UnitOfWork,
) -> list[MessageView]:
    chat = await uow.chats.get_by_id(chat_id)
    await assert_chat_access(principal, chat, uow.chats)

    messages = await uow.messages.list_for_chat(chat_id, limit=limit)
    profiles = await uow.users.get_profiles(sorted({m.sender_id for m in messages}))
    return [
        MessageView(
            message=m,
            sender=profiles.get(m.sender_id) or UserProfile.unknown(m.sender_id),
        )
        for m in messages
    ]

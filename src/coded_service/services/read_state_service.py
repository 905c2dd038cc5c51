from __future__ import annotations

import uuid
from datetime import datetime, timezone

from coded_service.application.dto.events import MessageReadPayload
from coded_service.application.dto.principal import Principal
from coded_service.application.policies.permissions import assert_chat_access
from coded_service.application.ports.clock import to_unix
from coded_service.application.ports.delivery import DeliveryGateway
from coded_service.application.uow import UnitOfWork


async def mark_read(
    chat_id: uuid.UUID,
    principal: Principal,
    message_ids: list[uuid.UUID] | None,
    uow: UnitOfWork,
    gateway: DeliveryGateway,
) -> list[uuid.UUID]:
    """Mark the partner's unread messages as read and announce the receipt.

    An empty or missing ``message_ids`` marks every unread partner message in
    the chat, not none of them. Returns the ids that were updated; nothing is
    broadcast when none were.
    """
    chat = await uow.chats.get_by_id(chat_id)
    await assert_chat_access(principal, chat, uow.chats)

    updated = await uow.messages_w.mark_read(chat_id, principal.user_id, message_ids or None)
    await uow.commit()

    if updated:
        await gateway.broadcast_message_read(
            MessageReadPayload(
                chat_id=str(chat_id),
                user_id=principal.user_id,
                message_ids=[str(mid) for mid in updated],
                timestamp=to_unix(datetime.now(timezone.utc)),
            )
        )
    return updated

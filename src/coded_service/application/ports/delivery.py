from __future__ import annotations

from typing import Protocol

from coded_service.application.dto.events import (
    ChatCreatedPayload,
    MessageReadPayload,
    NewMessagePayload,
    TypingPayload,
)


class DeliveryGateway(Protocol):
    """Fan-out seam for collaborators.

    Call only after the fact being announced has been committed. Delivery is
    best effort: nothing is raised when no client is listening.
    """

    async def broadcast_new_message(self, payload: NewMessagePayload) -> None: ...

    async def broadcast_chat_created(self, payload: ChatCreatedPayload) -> None: ...

    async def broadcast_message_read(self, payload: MessageReadPayload) -> None: ...

    async def broadcast_typing_start(self, payload: TypingPayload) -> None: ...

    async def broadcast_typing_end(self, payload: TypingPayload) -> None: ...

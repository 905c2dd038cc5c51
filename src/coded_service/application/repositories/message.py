from __future__ import annotations

from typing import Protocol
from uuid import UUID

from coded_service.domain.entities.message import Message


class MessageReader(Protocol):
    async def list_for_chat(self, chat_id: UUID, *, limit: int = 200) -> list[Message]:
        """The newest ``limit`` messages, returned oldest first."""
        ...


class MessageWriter(Protocol):
    async def add(self, message: Message) -> Message: ...

    async def mark_read(
        self,
        chat_id: UUID,
        reader_id: str,
        message_ids: list[UUID] | None = None,
    ) -> list[UUID]:
        """Flag unread messages not sent by ``reader_id`` as read.

        Restricted to ``message_ids`` when given. Returns the ids that changed.
        """
        ...

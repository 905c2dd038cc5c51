from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from coded_service.domain.entities.chat import Chat


class ChatReader(Protocol):
    async def get_by_id(self, chat_id: UUID) -> Chat | None: ...

    async def is_participant(self, chat_id: UUID, user_id: str) -> bool: ...

    async def find_by_participants(self, participants: list[str]) -> Chat | None:
        """Chat whose participant set equals ``participants`` exactly."""
        ...

    async def list_for_user(self, user_id: str, *, limit: int = 50) -> list[Chat]:
        """Chats of ``user_id``, most recent activity first."""
        ...


class ChatWriter(Protocol):
    async def create(self, chat: Chat) -> Chat: ...

    async def touch_last_message(self, chat_id: UUID, content: str, ts: datetime) -> None: ...

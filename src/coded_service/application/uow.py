from __future__ import annotations

from typing import Protocol

from coded_service.application.repositories.chat import ChatReader, ChatWriter
from coded_service.application.repositories.message import MessageReader, MessageWriter
from coded_service.application.repositories.user import UserReader


class UnitOfWork(Protocol):
    chats: ChatReader
    chats_w: ChatWriter
    messages: MessageReader
    messages_w: MessageWriter
    users: UserReader

    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...
    async def flush(self) -> None: ...

from __future__ import annotations

from coded_service.application.dto.principal import Principal
from coded_service.application.exceptions import ForbiddenError, NotFoundError
from coded_service.application.repositories.chat import ChatReader
from coded_service.domain.entities.chat import Chat


async def assert_chat_access(
    principal: Principal,
    chat: Chat | None,
    chats: ChatReader,
) -> Chat:
    """Raise if the chat doesn't exist or the principal is not a participant."""
    if chat is None:
        raise NotFoundError("Chat not found")

    if not await chats.is_participant(chat.id, principal.user_id):
        raise ForbiddenError("Access denied to chat")

    return chat

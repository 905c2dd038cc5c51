from __future__ import annotations

from dataclasses import dataclass

from coded_service.domain.entities.chat import Chat
from coded_service.domain.entities.user import UserProfile


@dataclass(frozen=True, slots=True)
class ChatSummary:
    chat: Chat
    partner: UserProfile

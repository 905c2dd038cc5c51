from __future__ import annotations

from dataclasses import dataclass

from coded_service.domain.entities.message import Message
from coded_service.domain.entities.user import UserProfile


@dataclass(frozen=True, slots=True)
class MessageView:
    message: Message
    sender: UserProfile

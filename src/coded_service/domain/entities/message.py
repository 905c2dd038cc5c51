from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True, slots=True)
class Message:
    id: UUID
    chat_id: UUID
    sender_id: str
    content: str
    type: str
    is_read: bool
    created_at: datetime

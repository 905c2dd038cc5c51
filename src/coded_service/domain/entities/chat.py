from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True, slots=True)
class Chat:
    id: UUID
    participants: tuple[str, ...]
    last_message: str | None
    last_message_at: datetime
    created_at: datetime

    def partner_of(self, user_id: str) -> str | None:
        """First participant other than ``user_id``."""
        for participant in self.participants:
            if participant != user_id:
                return participant
        return None

from __future__ import annotations

from typing import Protocol

from coded_service.domain.entities.user import UserProfile


class UserReader(Protocol):
    async def get_profiles(self, user_ids: list[str]) -> dict[str, UserProfile]:
        """Known profiles keyed by id; unknown ids are simply absent."""
        ...

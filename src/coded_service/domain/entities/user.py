from __future__ import annotations

from dataclasses import dataclass

from coded_service.domain.value_objects.enums import PresenceStatus

FALLBACK_AVATAR = "https://upload.wikimedia.org/wikipedia/commons/8/89/Portrait_Placeholder.png"


@dataclass(frozen=True, slots=True)
class UserProfile:
    """Public card of a user as shown next to chats and messages."""

    id: str
    name: str
    avatar: str
    status: str

    @classmethod
    def unknown(cls, user_id: str = "") -> UserProfile:
        return cls(
            id=user_id,
            name="Unknown",
            avatar=FALLBACK_AVATAR,
            status=PresenceStatus.OFFLINE,
        )

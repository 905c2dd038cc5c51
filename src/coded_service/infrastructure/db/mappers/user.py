from __future__ import annotations

from coded_service.domain.entities.user import UserProfile
from coded_service.infrastructure.db.models.user import UserModel


def model_to_entity(model: UserModel) -> UserProfile:
    # profile rows are sparse; blanks fall back to the placeholder card
    fallback = UserProfile.unknown(model.id)
    return UserProfile(
        id=model.id,
        name=model.name or fallback.name,
        avatar=model.avatar or fallback.avatar,
        status=model.status or fallback.status,
    )

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated caller identity extracted from JWT."""

    user_id: str

    @property
    def principal_key(self) -> str:
        """Identity a realtime connection is bound to."""
        return self.user_id

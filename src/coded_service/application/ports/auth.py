from __future__ import annotations

from typing import Protocol

from coded_service.application.dto.principal import Principal


class TokenVerifier(Protocol):
    async def verify(self, token: str) -> Principal:
        """Return the caller or raise; REST and WebSocket share one verifier."""
        ...

from __future__ import annotations

import jwt

from coded_service.application.dto.principal import Principal
from coded_service.application.exceptions import UnauthorizedError


class HS256Verifier:
    """Verify JWTs signed with a shared HMAC secret.

    The user id is read from the ``userId`` claim, falling back to ``sub``.
    """

    def __init__(self, secret: str, algorithm: str = "HS256") -> None:
        self._secret = secret
        self._algorithm = algorithm

    async def verify(self, token: str) -> Principal:
        if not token:
            raise UnauthorizedError("No authorization token provided")
        payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        user_id = payload.get("userId") or payload.get("sub")
        if not user_id:
            raise UnauthorizedError("Token carries no user id")
        return Principal(user_id=str(user_id))

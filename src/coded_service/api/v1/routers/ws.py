from __future__ import annotations

import logging

from fastapi import APIRouter, Query, WebSocket

from coded_service.api.deps import HubDep, get_verifier
from coded_service.application.dto.principal import Principal
from coded_service.config import settings
from coded_service.infrastructure.ws.connection import Connection, ConnectionLimits
from coded_service.infrastructure.ws.hub import HubClosedError
from coded_service.infrastructure.ws.transport import (
    CLOSE_AUTH_FAILED,
    StarletteTransport,
)

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])

_limits = ConnectionLimits.from_settings(settings)


async def _authenticate(token: str | None) -> Principal | None:
    if not token:
        logger.info("WS connection rejected: no token provided")
        return None
    try:
        return await get_verifier().verify(token)
    except Exception:
        logger.debug("WS auth failed", exc_info=True)
        return None


@router.websocket("/ws")
async def ws_endpoint(
    websocket: WebSocket,
    hub: HubDep,
    token: str | None = Query(None),
) -> None:
    principal = await _authenticate(token)
    if principal is None:
        await websocket.close(code=CLOSE_AUTH_FAILED, reason="Authentication failed")
        return

    await websocket.accept()
    connection = Connection(
        StarletteTransport(websocket),
        principal.principal_key,
        hub,
        limits=_limits,
    )
    try:
        await connection.open()
    except HubClosedError:
        logger.warning("WS hub is down, closing %s", principal.principal_key)
        await websocket.close(code=1013, reason="Try again later")
        return

    await connection.serve()

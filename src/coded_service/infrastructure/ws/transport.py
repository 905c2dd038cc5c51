"""Duplex transport seam between a Connection and the socket library."""
from __future__ import annotations

import logging
from typing import Protocol

from fastapi import WebSocket
from starlette.websockets import WebSocketState

logger = logging.getLogger(__name__)

CLOSE_NORMAL = 1000
CLOSE_MESSAGE_TOO_BIG = 1009
CLOSE_AUTH_FAILED = 4001


class TransportClosed(Exception):
    """The peer went away or the socket is no longer usable."""

    def __init__(self, code: int = CLOSE_NORMAL) -> None:
        self.code = code
        super().__init__(f"transport closed (code={code})")


class Transport(Protocol):
    async def receive_text(self) -> str:
        """Return the next data frame; raise ``TransportClosed`` on disconnect."""
        ...

    async def send_text(self, data: str) -> None: ...

    async def ping(self, fallback: str) -> bool:
        """Send a heartbeat and report whether the peer acknowledged it.

        Transports without control frames send ``fallback`` as a data frame.
        """
        ...

    async def close(self, code: int = CLOSE_NORMAL) -> None: ...


class StarletteTransport:
    """Adapter over an accepted FastAPI/Starlette ``WebSocket``.

    ASGI exposes no ping control frame to the application, so the heartbeat
    goes out as a text frame. Protocol keepalive is run by the server itself
    (uvicorn ``ws_ping_interval``/``ws_ping_timeout``), which disconnects a
    peer that stops answering; a delivered heartbeat therefore counts as
    acknowledged.
    """

    def __init__(self, websocket: WebSocket) -> None:
        self._ws = websocket

    async def receive_text(self) -> str:
        message = await self._ws.receive()
        if message["type"] == "websocket.disconnect":
            raise TransportClosed(message.get("code", CLOSE_NORMAL))
        text = message.get("text")
        if text is not None:
            return text
        return (message.get("bytes") or b"").decode("utf-8", errors="replace")

    async def send_text(self, data: str) -> None:
        if self._ws.application_state != WebSocketState.CONNECTED:
            raise TransportClosed()
        await self._ws.send_text(data)

    async def ping(self, fallback: str) -> bool:
        await self.send_text(fallback)
        return True

    async def close(self, code: int = CLOSE_NORMAL) -> None:
        if self._ws.application_state != WebSocketState.CONNECTED:
            return
        try:
            await self._ws.close(code=code)
        except Exception:
            logger.debug("WS close failed", exc_info=True)

"""One live client: its mailbox plus the reader and writer pumps."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Self

from coded_service.application.dto.events import (
    ChatSubscribedPayload,
    ConnectedPayload,
    MessageReadPayload,
    PongPayload,
    SubscribedPayload,
    TypingPayload,
)
from coded_service.application.ports.clock import Clock, SystemClock, to_unix
from coded_service.config import Settings
from coded_service.infrastructure.ws.mailbox import Mailbox
from coded_service.infrastructure.ws.protocol import (
    ChatSubscribed,
    Connected,
    Envelope,
    InboundEnvelope,
    MessageReadRequest,
    PingRequest,
    Pong,
    ProtocolError,
    Subscribed,
    SubscribeChatRequest,
    SubscribeRequest,
    TypingEndRequest,
    TypingStartRequest,
    decode_inbound,
)
from coded_service.infrastructure.ws.transport import (
    CLOSE_MESSAGE_TOO_BIG,
    CLOSE_NORMAL,
    Transport,
    TransportClosed,
)

if TYPE_CHECKING:
    from coded_service.infrastructure.ws.hub import Hub

logger = logging.getLogger(__name__)


class ConnectionState(StrEnum):
    HANDSHAKING = "handshaking"
    REGISTERED = "registered"
    UNREGISTERING = "unregistering"
    CLOSED = "closed"


_STATE_ORDER = tuple(ConnectionState)


@dataclass(frozen=True, slots=True)
class ConnectionLimits:
    mailbox_size: int = 256
    heartbeat_interval: float = 30.0
    read_timeout: float = 60.0
    write_timeout: float = 10.0
    max_frame_bytes: int = 512

    @classmethod
    def from_settings(cls, settings: Settings) -> Self:
        return cls(
            mailbox_size=settings.WS_MAILBOX_SIZE,
            heartbeat_interval=settings.WS_HEARTBEAT_SECONDS,
            read_timeout=settings.WS_READ_TIMEOUT_SECONDS,
            write_timeout=settings.WS_WRITE_TIMEOUT_SECONDS,
            max_frame_bytes=settings.WS_MAX_FRAME_BYTES,
        )


class Connection:
    """A client bound to one transport.

    The reader pump decodes inbound frames and answers or rebroadcasts them;
    the writer pump drains the mailbox onto the wire and sends a heartbeat
    every interval, busy or not. Whichever pump exits first unregisters the
    connection from the hub and closes the transport; both steps happen once.
    """

    def __init__(
        self,
        transport: Transport,
        identity: str,
        hub: Hub,
        *,
        limits: ConnectionLimits | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.identity = identity
        self.state = ConnectionState.HANDSHAKING
        self._limits = limits or ConnectionLimits()
        self.mailbox = Mailbox(self._limits.mailbox_size)
        self._transport = transport
        self._hub = hub
        self._clock = clock or SystemClock()
        self._close_code = CLOSE_NORMAL
        self._transport_closed = False
        self._reader: asyncio.Task[None] | None = None
        self._read_deadline: asyncio.Timeout | None = None

    def __repr__(self) -> str:
        return f"<Connection {self.identity} {self.state}>"

    def advance(self, state: ConnectionState) -> None:
        """Move forward in the lifecycle; earlier states are never re-entered."""
        if _STATE_ORDER.index(state) > _STATE_ORDER.index(self.state):
            self.state = state

    def _now(self) -> int:
        return to_unix(self._clock.now())

    async def open(self) -> None:
        """Register with the hub and queue the welcome frame."""
        await self._hub.register(self)
        await self.send(
            Connected(
                payload=ConnectedPayload(
                    user_id=self.identity,
                    message="WebSocket connected successfully",
                    time=self._now(),
                )
            )
        )

    async def send(self, envelope: Envelope) -> bool:
        """Queue an envelope for this client only.

        A full mailbox is treated like a transport fault: the connection is
        unregistered instead of waiting for room.
        """
        if self.mailbox.offer(envelope.encode()):
            return True
        if not self.mailbox.closed:
            logger.warning("WS mailbox full for %s, disconnecting", self.identity)
            await self._hub.unregister(self)
        return False

    async def serve(self) -> None:
        """Run both pumps until the connection is torn down."""
        self._reader = asyncio.create_task(
            self._read_pump(), name=f"ws-reader-{self.identity}",
        )
        writer = asyncio.create_task(
            self._write_pump(), name=f"ws-writer-{self.identity}",
        )
        pumps = {self._reader, writer}
        try:
            await asyncio.wait(pumps)
        finally:
            for task in pumps:
                task.cancel()
            await asyncio.gather(*pumps, return_exceptions=True)

    async def _read_pump(self) -> None:
        try:
            while True:
                raw = await self._receive()
                if len(raw.encode("utf-8")) > self._limits.max_frame_bytes:
                    logger.warning(
                        "WS frame from %s exceeds %d bytes, closing",
                        self.identity,
                        self._limits.max_frame_bytes,
                    )
                    self._close_code = CLOSE_MESSAGE_TOO_BIG
                    return
                try:
                    request = decode_inbound(raw)
                except ProtocolError as exc:
                    logger.warning("WS dropped frame from %s: %s", self.identity, exc)
                    continue
                if request is not None:
                    await self._dispatch(request)
        except TransportClosed as exc:
            logger.debug("WS peer %s went away (code=%d)", self.identity, exc.code)
        except TimeoutError:
            logger.info("WS read deadline expired for %s", self.identity)
        except Exception:
            logger.exception("WS read error for %s", self.identity)
        finally:
            await self._teardown()

    async def _receive(self) -> str:
        async with asyncio.timeout(self._limits.read_timeout) as deadline:
            self._read_deadline = deadline
            try:
                return await self._transport.receive_text()
            finally:
                self._read_deadline = None

    def _extend_read_deadline(self) -> None:
        deadline = self._read_deadline
        if deadline is not None and not deadline.expired():
            deadline.reschedule(asyncio.get_running_loop().time() + self._limits.read_timeout)

    async def _dispatch(self, request: InboundEnvelope) -> None:
        if isinstance(request, PingRequest):
            await self.send(Pong(payload=PongPayload(time=self._now())))

        elif isinstance(request, SubscribeRequest):
            await self.send(
                Subscribed(
                    payload=SubscribedPayload(
                        channel=request.channel,
                        user_id=self.identity,
                        time=self._now(),
                    )
                )
            )

        elif isinstance(request, SubscribeChatRequest):
            await self.send(
                ChatSubscribed(
                    payload=ChatSubscribedPayload(
                        chat_id=request.payload.chat_id,
                        user_id=self.identity,
                    )
                )
            )

        elif isinstance(request, TypingStartRequest):
            await self._hub.broadcast_typing_start(self._typing(request.payload.chat_id))

        elif isinstance(request, TypingEndRequest):
            await self._hub.broadcast_typing_end(self._typing(request.payload.chat_id))

        elif isinstance(request, MessageReadRequest):
            await self._hub.broadcast_message_read(
                MessageReadPayload(
                    chat_id=request.payload.chat_id,
                    user_id=self.identity,
                    message_ids=request.payload.message_ids,
                    timestamp=self._now(),
                )
            )

    def _typing(self, chat_id: str) -> TypingPayload:
        return TypingPayload(chat_id=chat_id, user_id=self.identity, timestamp=self._now())

    async def _write_pump(self) -> None:
        loop = asyncio.get_running_loop()
        next_heartbeat = loop.time() + self._limits.heartbeat_interval
        try:
            while True:
                # fixed schedule: outbound traffic does not postpone the heartbeat
                if loop.time() >= next_heartbeat:
                    await self._heartbeat()
                    next_heartbeat = loop.time() + self._limits.heartbeat_interval
                try:
                    async with asyncio.timeout_at(next_heartbeat):
                        frame = await self.mailbox.get()
                except TimeoutError:
                    continue
                if frame is None:
                    return
                await self._write(self._transport.send_text(frame))
        except TransportClosed:
            logger.debug("WS write to %s on a closed transport", self.identity)
        except TimeoutError:
            logger.info("WS write deadline exceeded for %s", self.identity)
        except Exception:
            logger.exception("WS write error for %s", self.identity)
        finally:
            await self._teardown()

    async def _heartbeat(self) -> None:
        """Probe the peer; an acknowledged probe counts as read activity."""
        frame = Pong(payload=PongPayload(time=self._now())).encode()
        async with asyncio.timeout(self._limits.write_timeout):
            acked = await self._transport.ping(frame)
        if acked:
            self._extend_read_deadline()

    async def _write(self, op: Awaitable[None]) -> None:
        async with asyncio.timeout(self._limits.write_timeout):
            await op

    async def _teardown(self) -> None:
        await self._hub.unregister(self)
        await self._close_transport()

    async def _close_transport(self) -> None:
        if self._transport_closed:
            return
        self._transport_closed = True
        self.advance(ConnectionState.CLOSED)
        await self._transport.close(self._close_code)
        reader = self._reader
        if reader is not None and reader is not asyncio.current_task() and not reader.done():
            reader.cancel()

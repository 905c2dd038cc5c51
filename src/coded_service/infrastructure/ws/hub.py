"""In-process WebSocket hub: live connection registry and event fan-out."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from coded_service.application.dto.events import (
    ChatCreatedPayload,
    MessageReadPayload,
    NewMessagePayload,
    TypingPayload,
)
from coded_service.infrastructure.ws.connection import ConnectionState
from coded_service.infrastructure.ws.protocol import (
    ChatCreated,
    Envelope,
    MessageRead,
    NewMessage,
    TypingEnd,
    TypingStart,
)

if TYPE_CHECKING:
    from coded_service.infrastructure.ws.connection import Connection

logger = logging.getLogger(__name__)


class HubClosedError(RuntimeError):
    """The hub control loop is not running."""


class _Op(StrEnum):
    REGISTER = "register"
    UNREGISTER = "unregister"
    BROADCAST = "broadcast"


@dataclass(slots=True)
class _Command:
    op: _Op
    done: asyncio.Future[None]
    connection: Connection | None = None
    frame: str | None = None


class Hub:
    """Single authority over who is connected and what everyone receives.

    Register, unregister and broadcast requests are queued and applied one at
    a time by the control loop, which is the only code that touches the
    connection set. Callers wait until their request has been applied, so a
    connection is eligible for every broadcast submitted after ``register``
    returns and for none submitted before.

    Implements application.ports.delivery.DeliveryGateway.
    """

    def __init__(self) -> None:
        self._connections: set[Connection] = set()
        self._commands: asyncio.Queue[_Command] = asyncio.Queue()
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def connected_count(self) -> int:
        return len(self._connections)

    def __contains__(self, connection: object) -> bool:
        return connection in self._connections

    async def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="ws-hub")
        logger.info("WS hub started")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

        while not self._commands.empty():
            command = self._commands.get_nowait()
            if command.done.done():
                continue
            if command.op is _Op.REGISTER:
                command.done.set_exception(HubClosedError("hub stopped"))
            else:
                command.done.set_result(None)

        for connection in list(self._connections):
            self._remove(connection)
        logger.info("WS hub stopped")

    async def register(self, connection: Connection) -> None:
        await self._submit(_Op.REGISTER, connection=connection)

    async def unregister(self, connection: Connection) -> None:
        """Remove a connection and close its mailbox. Safe to call repeatedly."""
        if not self.running:
            return
        await self._submit(_Op.UNREGISTER, connection=connection)

    async def broadcast(self, envelope: Envelope) -> None:
        """Offer one envelope to every live connection.

        Never waits on a slow client and never fails: with no hub or no
        listeners the event is simply not delivered.
        """
        frame = envelope.encode()
        if not self.running:
            logger.debug("WS hub not running, dropping %s", envelope.type)
            return
        await self._submit(_Op.BROADCAST, frame=frame)

    async def broadcast_new_message(self, payload: NewMessagePayload) -> None:
        logger.info("Broadcasting new message to %d clients", self.connected_count)
        await self.broadcast(NewMessage(payload=payload))

    async def broadcast_chat_created(self, payload: ChatCreatedPayload) -> None:
        logger.info("Broadcasting chat created to %d clients", self.connected_count)
        await self.broadcast(ChatCreated(payload=payload))

    async def broadcast_message_read(self, payload: MessageReadPayload) -> None:
        await self.broadcast(MessageRead(payload=payload))

    async def broadcast_typing_start(self, payload: TypingPayload) -> None:
        await self.broadcast(TypingStart(payload=payload))

    async def broadcast_typing_end(self, payload: TypingPayload) -> None:
        await self.broadcast(TypingEnd(payload=payload))

    async def _submit(
        self,
        op: _Op,
        *,
        connection: Connection | None = None,
        frame: str | None = None,
    ) -> None:
        if not self.running:
            raise HubClosedError("hub is not running")
        done = asyncio.get_running_loop().create_future()
        self._commands.put_nowait(_Command(op, done, connection, frame))
        await done

    async def _run(self) -> None:
        while True:
            command = await self._commands.get()
            try:
                if command.op is _Op.REGISTER:
                    self._add(command.connection)
                elif command.op is _Op.UNREGISTER:
                    self._remove(command.connection)
                else:
                    self._fan_out(command.frame)
            except Exception:
                logger.exception("WS hub failed to apply %s", command.op)
            finally:
                if not command.done.done():
                    command.done.set_result(None)

    def _add(self, connection: Connection) -> None:
        if connection.state is not ConnectionState.HANDSHAKING:
            logger.warning("WS hub refused to register %r", connection)
            return
        self._connections.add(connection)
        connection.advance(ConnectionState.REGISTERED)
        logger.info("WS client registered: %s (total=%d)", connection.identity, len(self._connections))

    def _remove(self, connection: Connection) -> None:
        if connection not in self._connections:
            return
        self._connections.discard(connection)
        connection.advance(ConnectionState.UNREGISTERING)
        connection.mailbox.close()
        logger.info("WS client unregistered: %s (total=%d)", connection.identity, len(self._connections))

    def _fan_out(self, frame: str) -> None:
        for connection in list(self._connections):
            if connection.mailbox.offer(frame):
                continue
            logger.warning(
                "WS client %s too slow (%d queued), disconnecting",
                connection.identity,
                len(connection.mailbox),
            )
            self._remove(connection)

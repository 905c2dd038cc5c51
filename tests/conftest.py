"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable
from uuid import UUID

import pytest
import pytest_asyncio

from coded_service.application.dto.events import (
    ChatCreatedPayload,
    MessageReadPayload,
    NewMessagePayload,
    TypingPayload,
)
from coded_service.application.dto.principal import Principal
from coded_service.domain.entities.chat import Chat
from coded_service.domain.entities.message import Message
from coded_service.domain.entities.user import UserProfile
from coded_service.domain.value_objects.enums import MessageType
from coded_service.infrastructure.ws.hub import Hub
from coded_service.infrastructure.ws.transport import CLOSE_NORMAL, TransportClosed


@pytest.fixture
def alice() -> Principal:
    return Principal(user_id="alice")


@pytest.fixture
def bob() -> Principal:
    return Principal(user_id="bob")


def make_chat(
    *participants: str,
    chat_id: UUID | None = None,
    last_message_at: datetime | None = None,
) -> Chat:
    now = datetime.now(timezone.utc)
    return Chat(
        id=chat_id or uuid.uuid4(),
        participants=participants or ("alice", "bob"),
        last_message=None,
        last_message_at=last_message_at or now,
        created_at=now,
    )


def make_message(
    *,
    chat_id: UUID,
    sender_id: str = "bob",
    content: str = "hello",
    is_read: bool = False,
    offset: int = 0,
) -> Message:
    return Message(
        id=uuid.uuid4(),
        chat_id=chat_id,
        sender_id=sender_id,
        content=content,
        type=MessageType.TEXT,
        is_read=is_read,
        created_at=datetime.now(timezone.utc) + timedelta(seconds=offset),
    )


@dataclass
class FakeChatReader:
    _store: dict[UUID, Chat] = field(default_factory=dict)

    async def get_by_id(self, chat_id: UUID) -> Chat | None:
        return self._store.get(chat_id)

    async def is_participant(self, chat_id: UUID, user_id: str) -> bool:
        chat = self._store.get(chat_id)
        return chat is not None and user_id in chat.participants

    async def find_by_participants(self, participants: list[str]) -> Chat | None:
        wanted = set(participants)
        for chat in self._store.values():
            if set(chat.participants) == wanted:
                return chat
        return None

    async def list_for_user(self, user_id: str, *, limit: int = 50) -> list[Chat]:
        chats = [c for c in self._store.values() if user_id in c.participants]
        chats.sort(key=lambda c: c.last_message_at, reverse=True)
        return chats[:limit]


@dataclass
class FakeChatWriter:
    _reader: FakeChatReader

    async def create(self, chat: Chat) -> Chat:
        self._reader._store[chat.id] = chat
        return chat

    async def touch_last_message(self, chat_id: UUID, content: str, ts: datetime) -> None:
        chat = self._reader._store[chat_id]
        self._reader._store[chat_id] = Chat(
            id=chat.id,
            participants=chat.participants,
            last_message=content,
            last_message_at=ts,
            created_at=chat.created_at,
        )


@dataclass
class FakeMessageReader:
    _messages: list[Message] = field(default_factory=list)

    async def list_for_chat(self, chat_id: UUID, *, limit: int = 200) -> list[Message]:
        found = [m for m in self._messages if m.chat_id == chat_id]
        found.sort(key=lambda m: m.created_at)
        return found[-limit:]


@dataclass
class FakeMessageWriter:
    _reader: FakeMessageReader

    async def add(self, message: Message) -> Message:
        self._reader._messages.append(message)
        return message

    async def mark_read(
        self,
        chat_id: UUID,
        reader_id: str,
        message_ids: list[UUID] | None = None,
    ) -> list[UUID]:
        updated: list[UUID] = []
        for i, m in enumerate(self._reader._messages):
            if m.chat_id != chat_id or m.sender_id == reader_id or m.is_read:
                continue
            if message_ids and m.id not in message_ids:
                continue
            self._reader._messages[i] = Message(
                id=m.id,
                chat_id=m.chat_id,
                sender_id=m.sender_id,
                content=m.content,
                type=m.type,
                is_read=True,
                created_at=m.created_at,
            )
            updated.append(m.id)
        return updated


@dataclass
class FakeUserReader:
    _profiles: dict[str, UserProfile] = field(default_factory=dict)

    async def get_profiles(self, user_ids: list[str]) -> dict[str, UserProfile]:
        return {uid: self._profiles[uid] for uid in user_ids if uid in self._profiles}


@dataclass
class FakeUoW:
    """In-memory UoW for unit tests."""
    chats: FakeChatReader = field(default_factory=FakeChatReader)
    chats_w: FakeChatWriter | None = None
    messages: FakeMessageReader = field(default_factory=FakeMessageReader)
    messages_w: FakeMessageWriter | None = None
    users: FakeUserReader = field(default_factory=FakeUserReader)
    _committed: bool = False

    def __post_init__(self) -> None:
        if self.chats_w is None:
            self.chats_w = FakeChatWriter(self.chats)
        if self.messages_w is None:
            self.messages_w = FakeMessageWriter(self.messages)

    def add_profile(self, user_id: str, name: str, status: str = "online") -> None:
        self.users._profiles[user_id] = UserProfile(
            id=user_id, name=name, avatar=f"https://img.test/{user_id}.png", status=status,
        )

    async def flush(self) -> None:
        pass

    async def commit(self) -> None:
        self._committed = True

    async def rollback(self) -> None:
        pass


@dataclass
class RecordingGateway:
    """DeliveryGateway fake that remembers every call and the commit state at that moment."""
    uow: FakeUoW | None = None
    calls: list[tuple[str, Any, bool]] = field(default_factory=list)

    def _record(self, kind: str, payload: Any) -> None:
        committed = self.uow._committed if self.uow is not None else True
        self.calls.append((kind, payload, committed))

    async def broadcast_new_message(self, payload: NewMessagePayload) -> None:
        self._record("new_message", payload)

    async def broadcast_chat_created(self, payload: ChatCreatedPayload) -> None:
        self._record("chat_created", payload)

    async def broadcast_message_read(self, payload: MessageReadPayload) -> None:
        self._record("message_read", payload)

    async def broadcast_typing_start(self, payload: TypingPayload) -> None:
        self._record("typing_start", payload)

    async def broadcast_typing_end(self, payload: TypingPayload) -> None:
        self._record("typing_end", payload)


class FakeTransport:
    """Scriptable in-memory transport.

    Push client frames with ``feed``; ``hang_up`` makes the next read fail as
    if the peer disconnected. ``stall`` blocks every write until ``release``.
    """

    def __init__(self, *, send_delay: float = 0.0, acks_heartbeats: bool = True) -> None:
        self.inbound: asyncio.Queue[str | None] = asyncio.Queue()
        self.sent: list[str] = []
        self.heartbeats: list[str] = []
        self.close_codes: list[int] = []
        self._send_delay = send_delay
        self._acks_heartbeats = acks_heartbeats
        self._unstalled = asyncio.Event()
        self._unstalled.set()

    def feed(self, frame: str | dict[str, Any]) -> None:
        self.inbound.put_nowait(frame if isinstance(frame, str) else json.dumps(frame))

    def hang_up(self) -> None:
        self.inbound.put_nowait(None)

    def stall(self) -> None:
        self._unstalled.clear()

    def release(self) -> None:
        self._unstalled.set()

    @property
    def closed(self) -> bool:
        return bool(self.close_codes)

    def frames(self) -> list[dict[str, Any]]:
        return [json.loads(raw) for raw in self.sent]

    def kinds(self) -> list[str]:
        return [f["type"] for f in self.frames()]

    async def receive_text(self) -> str:
        frame = await self.inbound.get()
        if frame is None:
            raise TransportClosed(CLOSE_NORMAL)
        return frame

    async def send_text(self, data: str) -> None:
        if self.closed:
            raise TransportClosed()
        await self._unstalled.wait()
        if self._send_delay:
            await asyncio.sleep(self._send_delay)
        self.sent.append(data)

    async def ping(self, fallback: str) -> bool:
        if self.closed:
            raise TransportClosed()
        self.heartbeats.append(fallback)
        return self._acks_heartbeats

    async def close(self, code: int = CLOSE_NORMAL) -> None:
        self.close_codes.append(code)
        self.inbound.put_nowait(None)


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll ``predicate`` until it holds; fail the test on timeout."""
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0.005)


async def drain(mailbox: Any) -> list[dict[str, Any]]:
    """Pop every buffered frame from a mailbox without waiting."""
    frames = []
    while len(mailbox):
        frames.append(json.loads(await mailbox.get()))
    return frames


@pytest_asyncio.fixture
async def hub():
    hub = Hub()
    await hub.start()
    yield hub
    await hub.stop()

from __future__ import annotations

import uuid

import pytest

from coded_service.application.dto.principal import Principal
from coded_service.application.exceptions import ForbiddenError, NotFoundError
from coded_service.domain.entities.user import FALLBACK_AVATAR
from coded_service.domain.value_objects.enums import MessageType
from coded_service.services import message_service
from tests.conftest import FakeUoW, RecordingGateway, make_chat, make_message


@pytest.fixture
def uow_with_chat():
    uow = FakeUoW()
    chat = make_chat("alice", "bob")
    uow.chats._store[chat.id] = chat
    uow.add_profile("alice", "Alice")
    return uow, chat


@pytest.mark.asyncio
async def test_send_message_persists_then_notifies(alice, uow_with_chat):
    uow, chat = uow_with_chat
    gateway = RecordingGateway(uow=uow)

    view = await message_service.send_message(
        chat.id, alice, "hello", MessageType.TEXT, uow, gateway,
    )

    assert view.message.content == "hello"
    assert view.message.sender_id == "alice"
    assert view.sender.name == "Alice"
    assert uow.messages._messages == [view.message]
    assert uow.chats._store[chat.id].last_message == "hello"

    [(kind, payload, committed)] = gateway.calls
    assert kind == "new_message"
    assert committed is True
    assert payload.id == str(view.message.id)
    assert payload.chat_id == str(chat.id)
    assert payload.sender.name == "Alice"
    assert payload.type == "text"
    assert payload.is_read is False


@pytest.mark.asyncio
async def test_send_message_unknown_sender_gets_placeholder(bob, uow_with_chat):
    uow, chat = uow_with_chat
    gateway = RecordingGateway(uow=uow)

    view = await message_service.send_message(
        chat.id, bob, "hey", MessageType.IMAGE, uow, gateway,
    )

    assert view.sender.name == "Unknown"
    assert gateway.calls[0][1].sender.avatar == FALLBACK_AVATAR
    assert gateway.calls[0][1].type == "image"


@pytest.mark.asyncio
async def test_send_message_outsider_is_forbidden(uow_with_chat):
    uow, chat = uow_with_chat
    gateway = RecordingGateway(uow=uow)

    with pytest.raises(ForbiddenError):
        await message_service.send_message(
            chat.id, Principal(user_id="mallory"), "hi", MessageType.TEXT, uow, gateway,
        )

    assert gateway.calls == []
    assert uow.messages._messages == []
    assert uow._committed is False


@pytest.mark.asyncio
async def test_send_message_missing_chat(alice):
    uow = FakeUoW()
    gateway = RecordingGateway(uow=uow)

    with pytest.raises(NotFoundError):
        await message_service.send_message(
            uuid.uuid4(), alice, "hi", MessageType.TEXT, uow, gateway,
        )

    assert gateway.calls == []


@pytest.mark.asyncio
async def test_list_messages_oldest_first(alice, uow_with_chat):
    uow, chat = uow_with_chat
    later = make_message(chat_id=chat.id, content="second", offset=5)
    earlier = make_message(chat_id=chat.id, content="first", sender_id="alice")
    uow.messages._messages.extend([later, earlier])

    views = await message_service.list_messages(chat.id, alice, 50, uow)

    assert [v.message.content for v in views] == ["first", "second"]
    assert views[0].sender.name == "Alice"
    assert views[1].sender.name == "Unknown"


@pytest.mark.asyncio
async def test_list_messages_over_limit_keeps_newest(alice, uow_with_chat):
    uow, chat = uow_with_chat
    uow.messages._messages.extend(
        make_message(chat_id=chat.id, content=f"m{i}", offset=i) for i in range(250)
    )

    views = await message_service.list_messages(chat.id, alice, 200, uow)

    assert len(views) == 200
    assert views[0].message.content == "m50"
    assert views[-1].message.content == "m249"

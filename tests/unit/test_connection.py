from __future__ import annotations

import asyncio
import json

import pytest
import pytest_asyncio

from coded_service.application.dto.events import PongPayload
from coded_service.infrastructure.ws.connection import (
    Connection,
    ConnectionLimits,
    ConnectionState,
)
from coded_service.infrastructure.ws.protocol import Pong
from coded_service.infrastructure.ws.transport import CLOSE_MESSAGE_TOO_BIG, CLOSE_NORMAL
from tests.conftest import FakeTransport, wait_until


@pytest_asyncio.fixture
async def serve(hub):
    tasks: list[asyncio.Task] = []

    async def _serve(identity: str, transport: FakeTransport | None = None, **limits):
        transport = transport or FakeTransport()
        conn = Connection(transport, identity, hub, limits=ConnectionLimits(**limits))
        await conn.open()
        tasks.append(asyncio.create_task(conn.serve()))
        return conn, transport

    yield _serve

    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


def _of_kind(transport: FakeTransport, kind: str) -> list[dict]:
    return [f for f in transport.frames() if f["type"] == kind]


@pytest.mark.asyncio
async def test_open_sends_welcome_first(serve):
    conn, transport = await serve("alice")

    await wait_until(lambda: transport.sent)

    welcome = transport.frames()[0]
    assert welcome["type"] == "connected"
    assert welcome["payload"]["userId"] == "alice"
    assert welcome["payload"]["message"] == "WebSocket connected successfully"
    assert isinstance(welcome["payload"]["time"], int)
    assert conn.state is ConnectionState.REGISTERED


@pytest.mark.asyncio
async def test_ping_is_answered_with_pong(serve):
    _, transport = await serve("alice")

    transport.feed({"type": "ping"})

    await wait_until(lambda: _of_kind(transport, "pong"))


@pytest.mark.asyncio
async def test_subscribe_is_acknowledged(serve):
    _, transport = await serve("alice")

    transport.feed({"type": "subscribe", "channel": "user:alice"})
    transport.feed({"type": "subscribe_chat", "payload": {"chatId": "c1"}})

    await wait_until(lambda: _of_kind(transport, "chat_subscribed"))
    [sub] = _of_kind(transport, "subscribed")
    [chat_sub] = _of_kind(transport, "chat_subscribed")
    assert sub["payload"]["channel"] == "user:alice"
    assert sub["payload"]["userId"] == "alice"
    assert chat_sub["payload"] == {"chatId": "c1", "userId": "alice"}


@pytest.mark.asyncio
async def test_typing_is_rebroadcast_to_everyone(serve):
    _, alice = await serve("alice")
    _, bob = await serve("bob")

    alice.feed({"type": "typing_start", "payload": {"chatId": "c1"}})
    alice.feed({"type": "typing_end", "payload": {"chatId": "c1"}})

    await wait_until(lambda: _of_kind(bob, "typing_end"))
    [start] = _of_kind(bob, "typing_start")
    assert start["payload"]["chatId"] == "c1"
    assert start["payload"]["userId"] == "alice"
    assert bob.kinds()[-2:] == ["typing_start", "typing_end"]
    await wait_until(lambda: _of_kind(alice, "typing_end"))


@pytest.mark.asyncio
async def test_read_receipt_is_rebroadcast(serve):
    _, alice = await serve("alice")
    _, bob = await serve("bob")

    bob.feed({"type": "message_read", "payload": {"chatId": "c1", "messageIds": ["m1", "m2"]}})

    await wait_until(lambda: _of_kind(alice, "message_read"))
    [receipt] = _of_kind(alice, "message_read")
    assert receipt["payload"]["chatId"] == "c1"
    assert receipt["payload"]["userId"] == "bob"
    assert receipt["payload"]["messageIds"] == ["m1", "m2"]


@pytest.mark.asyncio
async def test_unknown_and_malformed_frames_keep_connection(serve, hub):
    conn, transport = await serve("alice")

    transport.feed({"type": "video_call", "payload": {}})
    transport.feed("{not json")
    transport.feed({"type": "typing_start"})
    transport.feed({"type": "ping"})

    await wait_until(lambda: _of_kind(transport, "pong"))
    assert transport.kinds() == ["connected", "pong"]
    assert conn in hub
    assert not transport.closed


@pytest.mark.asyncio
async def test_oversized_frame_closes_with_1009(serve, hub):
    conn, transport = await serve("alice")

    transport.feed(json.dumps({"type": "ping", "pad": "x" * 600}))

    await wait_until(lambda: transport.closed)
    assert transport.close_codes == [CLOSE_MESSAGE_TOO_BIG]
    assert conn not in hub
    assert conn.state is ConnectionState.CLOSED


@pytest.mark.asyncio
async def test_peer_disconnect_tears_down_once(serve, hub):
    conn, transport = await serve("alice")
    await wait_until(lambda: transport.sent)

    transport.hang_up()

    await wait_until(lambda: conn.state is ConnectionState.CLOSED)
    await asyncio.sleep(0.05)
    assert transport.close_codes == [CLOSE_NORMAL]
    assert conn not in hub
    assert conn.mailbox.closed


@pytest.mark.asyncio
async def test_idle_connection_gets_heartbeats(serve, hub):
    conn, transport = await serve("alice", heartbeat_interval=0.03, read_timeout=0.15)

    await asyncio.sleep(0.4)

    assert len(transport.heartbeats) >= 2
    assert json.loads(transport.heartbeats[0])["type"] == "pong"
    assert conn in hub
    assert not transport.closed


@pytest.mark.asyncio
async def test_busy_receive_only_client_still_gets_heartbeats(serve, hub):
    conn, transport = await serve("alice", heartbeat_interval=0.05, read_timeout=0.15)

    for n in range(20):
        await hub.broadcast(Pong(payload=PongPayload(time=n)))
        await asyncio.sleep(0.03)

    assert len(transport.heartbeats) >= 3
    assert len(transport.sent) == 21
    assert conn in hub
    assert not transport.closed


@pytest.mark.asyncio
async def test_unacknowledged_heartbeats_hit_read_deadline(serve, hub):
    conn, transport = await serve(
        "alice",
        FakeTransport(acks_heartbeats=False),
        heartbeat_interval=0.03,
        read_timeout=0.1,
    )

    await wait_until(lambda: transport.closed)

    assert transport.heartbeats
    assert conn not in hub


@pytest.mark.asyncio
async def test_inbound_frames_refresh_read_deadline(serve, hub):
    conn, transport = await serve(
        "alice", FakeTransport(acks_heartbeats=False), read_timeout=0.15,
    )

    for _ in range(5):
        await asyncio.sleep(0.06)
        transport.feed({"type": "ping"})

    await wait_until(lambda: len(_of_kind(transport, "pong")) == 5)
    assert conn in hub


@pytest.mark.asyncio
async def test_slow_write_is_fatal(serve, hub):
    conn, transport = await serve("alice", FakeTransport(send_delay=0.5), write_timeout=0.05)

    await wait_until(lambda: transport.closed)

    assert conn not in hub
    assert transport.sent == []


@pytest.mark.asyncio
async def test_wire_order_matches_broadcast_order(serve, hub):
    _, transport = await serve("alice")

    for n in range(10):
        await hub.broadcast(Pong(payload=PongPayload(time=n)))

    await wait_until(lambda: len(transport.sent) == 11)
    assert [f["payload"]["time"] for f in transport.frames()[1:]] == list(range(10))


@pytest.mark.asyncio
async def test_stalled_client_is_dropped_without_blocking_others(serve, hub):
    stalled = FakeTransport()
    stalled.stall()
    slow, _ = await serve("slow", stalled, mailbox_size=2)
    fast, fast_transport = await serve("fast")
    # writer holds the welcome frame, mailbox is empty again
    await wait_until(lambda: len(slow.mailbox) == 0)

    for n in range(3):
        await asyncio.wait_for(hub.broadcast(Pong(payload=PongPayload(time=n))), 1)

    assert slow not in hub
    assert fast in hub
    await wait_until(lambda: len(fast_transport.sent) == 4)

    stalled.release()

    await wait_until(lambda: stalled.closed)
    assert stalled.kinds() == ["connected", "pong", "pong"]

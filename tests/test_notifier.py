from unittest.mock import AsyncMock, MagicMock

import pytest
import socketio

from mailbrief.services.notifier import SocketIONotifier, account_room, create_socket_server


def fake_sio():
    sio = MagicMock()
    sio.enter_room = AsyncMock()
    sio.emit = AsyncMock()
    return sio


def test_account_room():
    assert account_room("acc-1") == "account:acc-1"


def test_create_socket_server():
    sio = create_socket_server(["http://localhost:5173"])
    assert isinstance(sio, socketio.AsyncServer)


def test_setup_registers_handlers_once():
    sio = fake_sio()
    notifier = SocketIONotifier(sio)

    notifier.setup()
    notifier.setup()

    assert [c.args[0] for c in sio.on.call_args_list] == ["connect", "disconnect"]


@pytest.mark.asyncio
async def test_connect_joins_account_room_from_auth():
    sio = fake_sio()
    notifier = SocketIONotifier(sio)

    accepted = await notifier._on_connect("sid-1", {}, {"account_id": "acc-1"})

    assert accepted is True
    sio.enter_room.assert_awaited_once_with("sid-1", "account:acc-1")
    sio.emit.assert_awaited_once_with("connection_status", {"status": "connected"}, to="sid-1")


@pytest.mark.asyncio
async def test_connect_reads_account_from_query_string():
    sio = fake_sio()
    notifier = SocketIONotifier(sio)

    accepted = await notifier._on_connect("sid-2", {"QUERY_STRING": "EIO=4&account_id=acc-9"})

    assert accepted is True
    sio.enter_room.assert_awaited_once_with("sid-2", "account:acc-9")


@pytest.mark.asyncio
async def test_connect_without_account_is_refused():
    sio = fake_sio()
    notifier = SocketIONotifier(sio)

    assert await notifier._on_connect("sid-3", {"QUERY_STRING": "EIO=4"}, None) is False
    sio.enter_room.assert_not_awaited()


@pytest.mark.asyncio
async def test_notify_emits_to_account_room():
    sio = fake_sio()
    notifier = SocketIONotifier(sio)

    await notifier.notify("acc-1", "summary_update", {"email_id": "m1", "summary": "hi"})
    await notifier.flush()

    sio.emit.assert_awaited_once_with("summary_update", {"email_id": "m1", "summary": "hi"}, room="account:acc-1")


@pytest.mark.asyncio
async def test_notify_swallows_emit_errors():
    sio = fake_sio()
    sio.emit.side_effect = ConnectionError("redis down")
    notifier = SocketIONotifier(sio)

    await notifier.notify("acc-1", "summary_update", {"email_id": "m1", "summary": "hi"})
    await notifier.flush()

    assert sio.emit.await_count == 1


@pytest.mark.asyncio
async def test_flush_with_nothing_pending():
    await SocketIONotifier(fake_sio()).flush()

# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio
from typing import Any, Mapping

from live_fakes import EventRecorder, FakeHandle, FakeTransport, make_connected_client

from adapters.live.base import TransportCallbacks, TransportClose, TransportError
from session.connection_status import ConnectionStatus
from session.live_client import LiveClient


# ---------------------------------------------------------------------
# connect
# ---------------------------------------------------------------------

def test_successful_connect_emits_single_open() -> None:
    transport = FakeTransport()
    client = LiveClient(transport=transport, model="m-1")
    recorder = EventRecorder(client)

    ok = asyncio.run(client.connect({"responseModalities": ["AUDIO"]}))

    assert ok is True
    assert client.status is ConnectionStatus.CONNECTED
    assert recorder.names() == ["open"]
    assert transport.open_calls == [("m-1", {"responseModalities": ["AUDIO"]})]
    assert recorder.log_types() == ["server.open", "client.open"]


def test_connect_while_connected_is_noop() -> None:
    client, transport, recorder = make_connected_client()

    assert asyncio.run(client.connect({})) is False

    assert len(transport.open_calls) == 1
    assert recorder.events == []
    assert client.status is ConnectionStatus.CONNECTED


class BlockingTransport(FakeTransport):
    """open() waits until released, so status stays CONNECTING."""

    def __init__(self) -> None:
        super().__init__()
        self.release = asyncio.Event()

    async def open(self, model: str, config: Mapping[str, Any], callbacks: TransportCallbacks):
        self.open_calls.append((model, dict(config)))
        self.callbacks = callbacks
        await self.release.wait()
        handle = FakeHandle()
        self.handles.append(handle)
        return handle


def test_connect_while_connecting_is_noop() -> None:
    async def scenario() -> tuple[bool, bool, ConnectionStatus, int]:
        transport = BlockingTransport()
        client = LiveClient(transport=transport)

        first = asyncio.create_task(client.connect({}))
        await asyncio.sleep(0)
        assert client.status is ConnectionStatus.CONNECTING

        second = await client.connect({})
        calls_while_connecting = len(transport.open_calls)

        transport.release.set()
        return await first, second, client.status, calls_while_connecting

    first, second, status, calls = asyncio.run(scenario())

    assert first is True
    assert second is False
    assert status is ConnectionStatus.CONNECTED
    assert calls == 1


def test_disconnect_while_connecting_discards_late_handle() -> None:
    async def scenario() -> tuple[bool, LiveClient, BlockingTransport]:
        transport = BlockingTransport()
        client = LiveClient(transport=transport)

        pending = asyncio.create_task(client.connect({}))
        await asyncio.sleep(0)
        client.disconnect()
        transport.release.set()
        return await pending, client, transport

    ok, client, transport = asyncio.run(scenario())

    assert ok is False
    assert client.status is ConnectionStatus.DISCONNECTED
    assert transport.handle.close_calls == 1


def test_failed_connect_reverts_and_emits_error() -> None:
    transport = FakeTransport(fail_with=RuntimeError("API key not valid"))
    client = LiveClient(transport=transport)
    recorder = EventRecorder(client)

    ok = asyncio.run(client.connect({}))

    assert ok is False
    assert client.status is ConnectionStatus.DISCONNECTED
    assert recorder.of("error") == [("API key not valid",)]
    assert recorder.names() == ["error"]

    entry = recorder.log_entries()[-1]
    assert entry.type == "server.error"
    assert entry.message == "Could not connect to GenAI Live: API key not valid"

    # Outbound is still gated after the failure
    client.send({"text": "hi"})
    assert recorder.names() == ["error", "error"]


def test_failed_connect_without_message_uses_default() -> None:
    client = LiveClient(transport=FakeTransport(fail_with=OSError()))
    recorder = EventRecorder(client)

    asyncio.run(client.connect({}))

    assert recorder.of("error") == [("Failed to connect.",)]


def test_reconnect_after_failure_is_allowed() -> None:
    transport = FakeTransport(fail_with=RuntimeError("down"))
    client = LiveClient(transport=transport)

    assert asyncio.run(client.connect({})) is False
    transport.fail_with = None
    assert asyncio.run(client.connect({})) is True
    assert len(transport.open_calls) == 2


# ---------------------------------------------------------------------
# disconnect
# ---------------------------------------------------------------------

def test_disconnect_is_idempotent() -> None:
    client, transport, recorder = make_connected_client()

    assert client.disconnect() is True
    assert client.disconnect() is True

    assert client.status is ConnectionStatus.DISCONNECTED
    assert transport.handle.close_calls == 1
    assert recorder.log_types() == ["client.close", "client.close"]
    assert [e.message for e in recorder.log_entries()] == ["Disconnected", "Disconnected"]


def test_disconnect_on_fresh_client() -> None:
    client = LiveClient(transport=FakeTransport())
    recorder = EventRecorder(client)

    assert client.disconnect() is True
    assert client.status is ConnectionStatus.DISCONNECTED
    assert recorder.log_types() == ["client.close"]


# ---------------------------------------------------------------------
# Transport callbacks
# ---------------------------------------------------------------------

def test_transport_error_disconnects_and_clears_handle() -> None:
    client, transport, recorder = make_connected_client()
    assert transport.callbacks is not None

    transport.callbacks.on_error(TransportError(message="socket reset"))

    assert client.status is ConnectionStatus.DISCONNECTED
    assert transport.handle.close_calls == 1
    assert recorder.of("error") == [("socket reset",)]

    client.send({"text": "after error"})
    assert transport.handle.turns == []


def test_transport_close_extracts_reason() -> None:
    client, transport, recorder = make_connected_client()
    assert transport.callbacks is not None

    transport.callbacks.on_close(
        TransportClose(code=1011, reason="Internal error [ERROR] Quota exceeded")
    )

    assert client.status is ConnectionStatus.DISCONNECTED
    assert recorder.of("close") == [("Quota exceeded",)]
    entry = recorder.log_entries()[-1]
    assert entry.type == "server.close"
    assert entry.message == "disconnected with reason: Quota exceeded"
    assert entry.data == {"code": 1011}


def test_transport_close_without_reason() -> None:
    client, transport, recorder = make_connected_client()
    assert transport.callbacks is not None

    transport.callbacks.on_close(TransportClose())

    assert recorder.of("close") == [("",)]
    assert recorder.log_entries()[-1].message == "disconnected"
    assert client.status is ConnectionStatus.DISCONNECTED


def test_callbacks_from_previous_session_are_ignored() -> None:
    client, transport, recorder = make_connected_client()
    assert transport.callbacks is not None
    stale = transport.callbacks

    client.disconnect()
    assert asyncio.run(client.connect({})) is True
    recorder.clear()

    stale.on_close(TransportClose(code=1000))
    stale.on_message({"serverContent": {"turnComplete": True}})

    assert recorder.events == []
    assert client.status is ConnectionStatus.CONNECTED


def test_messages_after_disconnect_are_dropped() -> None:
    client, transport, recorder = make_connected_client()
    assert transport.callbacks is not None

    client.disconnect()
    recorder.clear()
    transport.callbacks.on_message({"serverContent": {"turnComplete": True}})

    assert recorder.events == []


class GatedTransport(FakeTransport):
    """Each open() waits on its own gate, released by the test."""

    def __init__(self) -> None:
        super().__init__()
        self.gates: list[asyncio.Event] = []
        self.callbacks_by_open: list[TransportCallbacks] = []

    async def open(self, model: str, config: Mapping[str, Any], callbacks: TransportCallbacks):
        self.open_calls.append((model, dict(config)))
        self.callbacks = callbacks
        self.callbacks_by_open.append(callbacks)
        gate = asyncio.Event()
        self.gates.append(gate)
        await gate.wait()
        handle = FakeHandle()
        self.handles.append(handle)
        return handle


def test_reconnect_while_first_open_pending_keeps_newest_session() -> None:
    async def scenario():
        transport = GatedTransport()
        client = LiveClient(transport=transport)
        recorder = EventRecorder(client)

        first = asyncio.create_task(client.connect({}))
        await asyncio.sleep(0)
        client.disconnect()
        second = asyncio.create_task(client.connect({}))
        await asyncio.sleep(0)

        transport.gates[0].set()
        first_ok = await first
        transport.gates[1].set()
        second_ok = await second
        return client, transport, recorder, first_ok, second_ok

    client, transport, recorder, first_ok, second_ok = asyncio.run(scenario())
    abandoned, live = transport.handles

    assert first_ok is False
    assert second_ok is True
    assert client.status is ConnectionStatus.CONNECTED
    assert abandoned.close_calls == 1
    assert live.close_calls == 0
    assert recorder.names() == ["open"]

    client.send({"text": "hello"})
    assert live.turns == [([{"text": "hello"}], True)]
    assert abandoned.turns == []

    recorder.clear()
    transport.callbacks_by_open[0].on_message({"setupComplete": {}})
    transport.callbacks_by_open[1].on_message({"setupComplete": {}})
    assert recorder.names() == ["setupcomplete"]

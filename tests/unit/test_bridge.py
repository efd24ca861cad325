# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio
import base64
import json

from live_fakes import FakeTransport, make_app_config

from adapters.live.base import TransportClose
from session.bridge import BridgeResult, LiveBridge


def make_bridge(**kwargs) -> tuple[LiveBridge, FakeTransport]:
    transport = FakeTransport()
    bridge = LiveBridge(config=make_app_config(), transport=transport, **kwargs)
    return bridge, transport


def connect(bridge: LiveBridge) -> None:
    asyncio.run(bridge.on_json_message(json.dumps({"type": "connect"})))


def frame_types(result: BridgeResult) -> list[str]:
    return [f["type"] if isinstance(f, dict) else "<binary>" for f in result.frames]


# ---------------------------------------------------------------------
# Connection
# ---------------------------------------------------------------------

def test_connect_pushes_open_frame_and_sends_config() -> None:
    bridge, transport = make_bridge()

    connect(bridge)

    assert frame_types(bridge.drain()) == ["open"]
    model, config = transport.open_calls[0]
    assert model == "test-model"
    assert config["responseModalities"] == ["AUDIO"]


def test_disconnect_command_closes_handle() -> None:
    bridge, transport = make_bridge()
    connect(bridge)

    asyncio.run(bridge.on_json_message('{"type": "disconnect"}'))

    assert transport.handle.close_calls == 1
    assert not bridge.client.connected


def test_invalid_voice_reports_error_without_connecting() -> None:
    transport = FakeTransport()
    bridge = LiveBridge(config=make_app_config(voice="Robot"), transport=transport)

    connect(bridge)

    assert transport.open_calls == []
    assert frame_types(bridge.drain()) == ["error"]


def test_server_close_becomes_close_frame() -> None:
    bridge, transport = make_bridge()
    connect(bridge)
    bridge.drain()
    assert transport.callbacks is not None

    transport.callbacks.on_close(TransportClose(code=1011, reason="x error [ERROR] Quota"))

    assert bridge.drain().frames == ({"type": "close", "reason": "Quota"},)


# ---------------------------------------------------------------------
# Inbound server messages -> frames
# ---------------------------------------------------------------------

def test_audio_header_precedes_binary_frame() -> None:
    bridge, transport = make_bridge()
    connect(bridge)
    bridge.drain()
    assert transport.callbacks is not None

    pcm = b"\x00\x40" * 8
    transport.callbacks.on_message({
        "serverContent": {
            "outputTranscription": {"text": "hi"},
            "modelTurn": {
                "parts": [{"inlineData": {"mimeType": "audio/pcm;rate=24000",
                                          "data": base64.b64encode(pcm).decode()}}]
            },
            "turnComplete": True,
        }
    })

    result = bridge.drain()
    assert frame_types(result) == ["outputTranscription", "audio", "<binary>", "turncomplete"]
    header = result.frames[1]
    assert isinstance(header, dict)
    assert header["bytes"] == len(pcm)
    assert 0.0 < header["level"] <= 1.0
    assert result.frames[2] == pcm


def test_tool_call_frame_carries_payload() -> None:
    bridge, transport = make_bridge()
    connect(bridge)
    bridge.drain()
    assert transport.callbacks is not None

    payload = {"functionCalls": [{"id": "c1", "name": "f", "args": {}}]}
    transport.callbacks.on_message({"toolCall": payload})

    assert bridge.drain().frames == ({"type": "toolcall", "toolCall": payload},)


def test_drain_is_empty_when_nothing_pending() -> None:
    bridge, _ = make_bridge()
    assert bridge.drain() == BridgeResult()


# ---------------------------------------------------------------------
# Browser commands
# ---------------------------------------------------------------------

def test_binary_mic_audio_becomes_realtime_chunk() -> None:
    bridge, transport = make_bridge()
    connect(bridge)

    bridge.on_binary_message(b"\x01\x02")
    bridge.on_binary_message(b"")

    assert transport.handle.realtime == [{"mimeType": "audio/pcm;rate=16000", "data": "AQI="}]


def test_audio_and_realtime_commands() -> None:
    bridge, transport = make_bridge()
    connect(bridge)

    asyncio.run(bridge.on_json_message(json.dumps({"type": "audio", "data": "AAA="})))
    asyncio.run(bridge.on_json_message(json.dumps({
        "type": "realtime_input",
        "chunks": [{"mimeType": "image/jpeg", "data": "BBB="}],
    })))
    asyncio.run(bridge.on_json_message(json.dumps({
        "type": "realtime_input",
        "chunks": [{"mimeType": "image/jpeg"}],
    })))

    assert [m["mimeType"] for m in transport.handle.realtime] == ["audio/pcm;rate=16000", "image/jpeg"]


def test_send_and_tool_response_commands() -> None:
    bridge, transport = make_bridge()
    connect(bridge)

    asyncio.run(bridge.on_json_message(json.dumps({
        "type": "send", "parts": [{"text": "hi"}], "turnComplete": False,
    })))
    asyncio.run(bridge.on_json_message(json.dumps({
        "type": "tool_response", "functionResponses": [{"id": "c1", "response": {}}],
    })))

    assert transport.handle.turns == [([{"text": "hi"}], False)]
    assert transport.handle.tool_responses == [[{"id": "c1", "response": {}}]]


def test_send_before_connect_becomes_error_frame() -> None:
    bridge, _ = make_bridge()

    asyncio.run(bridge.on_json_message('{"type": "send", "parts": [{"text": "hi"}]}'))

    assert bridge.drain().frames == ({"type": "error", "message": "Client is not connected"},)


def test_malformed_commands_are_ignored() -> None:
    bridge, transport = make_bridge()
    connect(bridge)
    bridge.drain()

    for payload in ("{not json", "[1, 2]", '{"type": "bogus"}', '{"type": "audio"}'):
        asyncio.run(bridge.on_json_message(payload))

    assert bridge.drain().frames == ()
    assert transport.handle.transport_calls() == 0


# ---------------------------------------------------------------------
# Log retention
# ---------------------------------------------------------------------

def test_export_logs_returns_retained_entries() -> None:
    bridge, _ = make_bridge()
    connect(bridge)
    bridge.drain()

    asyncio.run(bridge.on_json_message('{"type": "export_logs"}'))

    (frame,) = bridge.drain().frames
    assert isinstance(frame, dict)
    assert frame["type"] == "logs"
    assert [e["type"] for e in frame["entries"]] == ["server.open", "client.open"]
    json.dumps(frame)


def test_clear_logs_empties_store() -> None:
    bridge, _ = make_bridge()
    connect(bridge)

    asyncio.run(bridge.on_json_message('{"type": "clear_logs"}'))

    assert len(bridge.log_store) == 0


def test_forward_logs_pushes_log_frames() -> None:
    bridge, _ = make_bridge(forward_logs=True)

    connect(bridge)

    assert frame_types(bridge.drain()) == ["log", "log", "open"]


def test_ws_disconnect_unsubscribes() -> None:
    bridge, transport = make_bridge()
    connect(bridge)
    bridge.drain()
    assert transport.callbacks is not None

    bridge.on_ws_disconnect("client went away")
    transport.callbacks.on_close(TransportClose(code=1000))

    assert bridge.drain().frames == ()
    assert transport.handle.close_calls == 1

"""
Browser <-> live session bridge.

Responsibilities:
- Owns one LiveClient per browser websocket
- Routes inbound JSON commands and binary mic audio -> client operations
- Turns every client event into an outbound frame for the browser
- Retains streaming log entries for export (LogStore)

Not responsible for:
- Websocket I/O (server.routes flushes drained frames)
- Tool execution (the browser answers tool calls)
- Microphone capture or playback

Browser -> server (JSON text):
    {"type": "connect"}
    {"type": "disconnect"}
    {"type": "realtime_input", "chunks": [{"mimeType": ..., "data": <b64>}]}
    {"type": "audio", "data": <b64 PCM16 @ 16kHz>}
    {"type": "send", "parts": [...], "turnComplete": true}
    {"type": "tool_response", "functionResponses": [...]}
    {"type": "export_logs"} | {"type": "clear_logs"}

Browser -> server (binary): raw PCM16 @ 16kHz mic audio.

Server -> browser: one JSON message per client event, e.g.
    {"type": "inputTranscription", "text": "...", "isFinal": false}
Audio is sent as {"type": "audio", "bytes": n, "level": rms} followed by a
binary frame with the PCM bytes.
"""

from __future__ import annotations

import asyncio
import json
from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Sequence, Union
from uuid import uuid4

from adapters.live.base import SessionTransport
from audio.pcm import bytes_to_base64, rms_level
from config import AppConfig
from constants import MIC_CHUNK_MIME_TYPE
from observability.event_bus import LiveEvent
from observability.logger import log_event, now_ms
from observability.streaming_log import LogStore, StreamingLogEntry
from session.live_client import LiveClient
from session.live_config import LiveSettings, ToolDefinition, build_live_connect_config
from session.realtime import InvalidRealtimeChunk, RealtimeChunk


OutboundFrame = Union[dict[str, Any], bytes]


def _new_bridge_id() -> str:
    return f"bridge_{uuid4().hex[:12]}"


# ------------------------------------------------------------------
# Bridge result
# ------------------------------------------------------------------

@dataclass(frozen=True)
class BridgeResult:
    """
    Frames to deliver to the browser, in emission order.

    dict -> JSON text message, bytes -> binary message.
    """
    frames: tuple[OutboundFrame, ...] = ()


# ------------------------------------------------------------------
# LiveBridge
# ------------------------------------------------------------------

class LiveBridge:
    """One bridge == one browser websocket == one LiveClient."""

    def __init__(
        self,
        *,
        config: AppConfig,
        transport: SessionTransport,
        tools: Sequence[ToolDefinition] = (),
        forward_logs: bool = False,
    ) -> None:
        self.bridge_id = _new_bridge_id()
        self._settings = LiveSettings.from_app_config(config, tools)
        self._forward_logs = forward_logs

        self.client = LiveClient(transport=transport, model=self._settings.model)
        self.log_store = LogStore()

        self._outbox: Deque[OutboundFrame] = deque()
        self._pending = asyncio.Event()

        self._subscriptions = self._build_subscriptions()
        for event, handler in self._subscriptions:
            self.client.on(event, handler)

    # ------------------------------------------------------------------
    # Websocket lifecycle
    # ------------------------------------------------------------------

    async def on_json_message(self, payload: str) -> None:
        """Route one browser command to the live client."""
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            self._log_bridge("JSON_DECODE_ERROR", error=str(e), payload_preview=payload[:100])
            return

        if not isinstance(data, dict):
            self._log_bridge("JSON_NOT_AN_OBJECT", payload_preview=payload[:100])
            return

        msg_type = data.get("type")

        if msg_type == "connect":
            try:
                config = build_live_connect_config(self._settings)
            except ValueError as e:
                self._push({"type": "error", "message": str(e)})
                return
            await self.client.connect(config)
        elif msg_type == "disconnect":
            self.client.disconnect()
        elif msg_type == "realtime_input":
            try:
                chunks = [RealtimeChunk.from_wire(c) for c in data.get("chunks") or ()]
            except (InvalidRealtimeChunk, AttributeError) as e:
                self._log_bridge("INVALID_REALTIME_CHUNK", error=str(e))
                return
            self.client.send_realtime_input(chunks)
        elif msg_type == "audio":
            b64 = data.get("data")
            if not isinstance(b64, str):
                self._log_bridge("INVALID_AUDIO_MESSAGE")
                return
            self.client.send_realtime_input([RealtimeChunk(MIC_CHUNK_MIME_TYPE, b64)])
        elif msg_type == "send":
            self.client.send(data.get("parts") or [], bool(data.get("turnComplete", True)))
        elif msg_type == "tool_response":
            self.client.send_tool_response(
                {"functionResponses": data.get("functionResponses") or []}
            )
        elif msg_type == "export_logs":
            self._push({"type": "logs", "entries": self.log_store.export()})
        elif msg_type == "clear_logs":
            self.log_store.clear()
        else:
            self._log_bridge("UNKNOWN_MESSAGE_TYPE", msg_type=msg_type)

    def on_binary_message(self, payload: bytes) -> None:
        """Raw PCM16 mic audio -> one realtime chunk."""
        if not payload:
            return
        self.client.send_realtime_input(
            [RealtimeChunk(MIC_CHUNK_MIME_TYPE, bytes_to_base64(payload))]
        )

    def on_ws_disconnect(self, reason: str | None = None) -> None:
        self.client.disconnect()
        for event, handler in self._subscriptions:
            self.client.off(event, handler)
        self._log_bridge("BRIDGE_CLOSED", reason=reason)

    # ------------------------------------------------------------------
    # Outbound frames
    # ------------------------------------------------------------------

    async def wait_for_frames(self) -> None:
        await self._pending.wait()

    def drain(self) -> BridgeResult:
        """Atomically take every pending frame, FIFO."""
        self._pending.clear()
        if not self._outbox:
            return BridgeResult()
        frames = tuple(self._outbox)
        self._outbox.clear()
        return BridgeResult(frames=frames)

    def _push(self, *frames: OutboundFrame) -> None:
        self._outbox.extend(frames)
        self._pending.set()

    # ------------------------------------------------------------------
    # Client event -> browser frame
    # ------------------------------------------------------------------

    def _build_subscriptions(self) -> list[tuple[LiveEvent, Any]]:
        def simple(name: str) -> Any:
            return lambda: self._push({"type": name})

        def transcription(name: str) -> Any:
            return lambda text, is_final: self._push(
                {"type": name, "text": text, "isFinal": is_final}
            )

        return [
            (LiveEvent.OPEN, simple("open")),
            (LiveEvent.SETUP_COMPLETE, simple("setupcomplete")),
            (LiveEvent.INTERRUPTED, simple("interrupted")),
            (LiveEvent.TURN_COMPLETE, simple("turncomplete")),
            (LiveEvent.CLOSE, lambda reason: self._push({"type": "close", "reason": reason})),
            (LiveEvent.ERROR, lambda message: self._push({"type": "error", "message": message})),
            (LiveEvent.TOOL_CALL, lambda payload: self._push({"type": "toolcall", "toolCall": payload})),
            (
                LiveEvent.TOOL_CALL_CANCELLATION,
                lambda payload: self._push(
                    {"type": "toolcallcancellation", "toolCallCancellation": payload}
                ),
            ),
            (LiveEvent.INPUT_TRANSCRIPTION, transcription("inputTranscription")),
            (LiveEvent.OUTPUT_TRANSCRIPTION, transcription("outputTranscription")),
            (LiveEvent.AUDIO, self._on_audio),
            (LiveEvent.CONTENT, lambda content: self._push({"type": "content", "content": content})),
            (LiveEvent.LOG, self._on_log),
        ]

    def _on_audio(self, buffer: bytes) -> None:
        self._push(
            {"type": "audio", "bytes": len(buffer), "level": rms_level(buffer)},
            buffer,
        )

    def _on_log(self, entry: StreamingLogEntry) -> None:
        self.log_store.append(entry)
        if self._forward_logs:
            self._push({"type": "log", "entry": entry.to_dict()})

    def _log_bridge(self, event_type: str, **fields: Any) -> None:
        log_event({
            "ts_ms": now_ms(),
            "event_type": event_type,
            "bridge_id": self.bridge_id,
            **fields,
        })

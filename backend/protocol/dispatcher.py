"""
Inbound message dispatcher.

Turns one classified InboundMessage into an ordered sequence of bus events
and streaming log entries.

Precedence (each branch terminal):
1. SetupComplete          -> setupcomplete
2. ToolCall               -> toolcall(payload)
3. ToolCallCancellation   -> toolcallcancellation(payload)
4. ServerContentMessage   -> sub-dispatch:
   a. interrupted         -> interrupted, nothing else in the message
   b. otherwise, in order, each present signal:
      inputTranscription, outputTranscription, modelTurn (audio* then
      content?), turnComplete
5. UnknownMessage         -> dropped

Runs synchronously inside the transport's message callback.
"""

from __future__ import annotations

from typing import Any, Mapping

from audio.demux import decode_audio_part, split_model_turn
from audio.pcm import AudioDecodeError
from constants import (
    LOG_RECEIVE_SERVER_CONTENT,
    LOG_RECEIVE_TOOL_CALL_CANCELLATION,
    LOG_SERVER_AUDIO,
    LOG_SERVER_CONTENT,
    LOG_SERVER_ERROR,
    LOG_SERVER_INPUT_TRANSCRIPTION,
    LOG_SERVER_OUTPUT_TRANSCRIPTION,
    LOG_SERVER_SETUP_COMPLETE,
    LOG_SERVER_TOOL_CALL,
    LOG_SERVER_TURN_COMPLETE,
)
from observability.event_bus import EventBus, LiveEvent
from protocol.messages import (
    InboundMessage,
    ModelTurn,
    ServerContent,
    ServerContentMessage,
    SetupComplete,
    ToolCall,
    ToolCallCancellation,
    UnknownMessage,
    parse_inbound_message,
)


class MessageDispatcher:
    """Classifies inbound messages and publishes their events on the bus."""

    def __init__(self, bus: EventBus) -> None:
        self._bus = bus

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def on_raw_message(self, raw: Mapping[str, Any]) -> None:
        """Transport callback entry point."""
        self.dispatch(parse_inbound_message(raw))

    def dispatch(self, message: InboundMessage) -> None:
        if isinstance(message, SetupComplete):
            self._bus.log(LOG_SERVER_SETUP_COMPLETE, "setupComplete")
            self._bus.emit(LiveEvent.SETUP_COMPLETE)
            return

        if isinstance(message, ToolCall):
            self._bus.log(LOG_SERVER_TOOL_CALL, dict(message.raw))
            self._bus.emit(LiveEvent.TOOL_CALL, dict(message.payload))
            return

        if isinstance(message, ToolCallCancellation):
            self._bus.log(LOG_RECEIVE_TOOL_CALL_CANCELLATION, dict(message.raw))
            self._bus.emit(LiveEvent.TOOL_CALL_CANCELLATION, dict(message.payload))
            return

        if isinstance(message, ServerContentMessage):
            self._dispatch_server_content(message.content)
            return

        if isinstance(message, UnknownMessage):
            return

        raise TypeError(f"Unhandled inbound message: {type(message).__name__}")

    # ------------------------------------------------------------------
    # serverContent
    # ------------------------------------------------------------------

    def _dispatch_server_content(self, content: ServerContent) -> None:
        if content.interrupted:
            # Exclusive: other signals in this message are discarded
            self._bus.log(LOG_RECEIVE_SERVER_CONTENT, "interrupted")
            self._bus.emit(LiveEvent.INTERRUPTED)
            return

        if content.input_transcription is not None:
            t = content.input_transcription
            self._bus.emit(LiveEvent.INPUT_TRANSCRIPTION, t.text, t.is_final)
            self._bus.log(LOG_SERVER_INPUT_TRANSCRIPTION, t.text)

        if content.output_transcription is not None:
            t = content.output_transcription
            self._bus.emit(LiveEvent.OUTPUT_TRANSCRIPTION, t.text, t.is_final)
            self._bus.log(LOG_SERVER_OUTPUT_TRANSCRIPTION, t.text)

        if content.model_turn is not None:
            self._dispatch_model_turn(content.model_turn)

        if content.turn_complete:
            self._bus.log(LOG_SERVER_TURN_COMPLETE, "turnComplete")
            self._bus.emit(LiveEvent.TURN_COMPLETE)

    def _dispatch_model_turn(self, model_turn: ModelTurn) -> None:
        split = split_model_turn(model_turn.parts)

        for part in split.audio_parts:
            try:
                buffer = decode_audio_part(part)
            except AudioDecodeError as e:
                message = str(e)
                self._bus.log(LOG_SERVER_ERROR, message, {"mimeType": part.mime_type})
                self._bus.emit(LiveEvent.ERROR, message)
                continue
            if buffer is None:
                continue
            self._bus.emit(LiveEvent.AUDIO, buffer)
            self._bus.log(LOG_SERVER_AUDIO, f"buffer ({len(buffer)})")

        content = split.remaining_content()
        if content is not None:
            self._bus.emit(LiveEvent.CONTENT, content)
            self._bus.log(LOG_SERVER_CONTENT, content)

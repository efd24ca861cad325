"""
Typed publish/subscribe channel for live session events.

Responsibilities:
- Fixed set of named events (LiveEvent)
- Add/remove subscriptions
- Synchronous, unbuffered delivery (no subscribers == event dropped)
- Parallel structured-log channel: every log() call emits exactly one
  StreamingLogEntry on LiveEvent.LOG and mirrors it to the JSONL logger

Non-responsibilities:
- No retention (see observability.streaming_log.LogStore)
- No backpressure
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable

from observability.logger import log_event, now_ms
from observability.streaming_log import StreamingLogEntry


class LiveEvent(str, Enum):
    """Events published by the live session client."""

    OPEN = "open"
    CLOSE = "close"
    ERROR = "error"
    SETUP_COMPLETE = "setupcomplete"
    TOOL_CALL = "toolcall"
    TOOL_CALL_CANCELLATION = "toolcallcancellation"
    INTERRUPTED = "interrupted"
    INPUT_TRANSCRIPTION = "inputTranscription"
    OUTPUT_TRANSCRIPTION = "outputTranscription"
    AUDIO = "audio"
    CONTENT = "content"
    TURN_COMPLETE = "turncomplete"
    LOG = "log"


Handler = Callable[..., Any]


class EventBus:
    """
    Owned, injectable event channel.

    Handler signatures per event:
        open()                               close(reason: str)
        error(message: str)                  setupcomplete()
        toolcall(payload: dict)              toolcallcancellation(payload: dict)
        interrupted()                        turncomplete()
        inputTranscription(text, is_final)   outputTranscription(text, is_final)
        audio(buffer: bytes)                 content(content: dict)
        log(entry: StreamingLogEntry)
    """

    def __init__(self) -> None:
        self._handlers: dict[LiveEvent, list[Handler]] = {}

    # ------------------------------------------------------------------
    # Subscription
    # ------------------------------------------------------------------

    def on(self, event: LiveEvent | str, handler: Handler) -> None:
        self._handlers.setdefault(LiveEvent(event), []).append(handler)

    def off(self, event: LiveEvent | str, handler: Handler) -> None:
        """Remove one registration of handler; unknown handlers are ignored."""
        handlers = self._handlers.get(LiveEvent(event))
        if not handlers:
            return
        try:
            handlers.remove(handler)
        except ValueError:
            return

    def listener_count(self, event: LiveEvent | str) -> int:
        return len(self._handlers.get(LiveEvent(event), ()))

    # ------------------------------------------------------------------
    # Publication
    # ------------------------------------------------------------------

    def emit(self, event: LiveEvent, *args: Any) -> None:
        """
        Deliver event to every current subscriber, in subscription order.

        A failing handler is reported and skipped; delivery continues.
        """
        # Snapshot so handlers may unsubscribe themselves mid-delivery
        for handler in tuple(self._handlers.get(event, ())):
            try:
                handler(*args)
            except Exception as exc:  # pylint: disable=broad-exception-caught
                log_event({
                    "ts_ms": now_ms(),
                    "event_type": "EVENT_HANDLER_ERROR",
                    "live_event": event.value,
                    "handler": getattr(handler, "__qualname__", repr(handler)),
                    "exception": type(exc).__name__,
                    "message": str(exc),
                })

    def log(self, type_: str, message: Any, data: Any = None) -> StreamingLogEntry:
        """Emit one StreamingLogEntry and mirror it to the JSONL log."""
        entry = StreamingLogEntry.create(type_, message, data)

        record: dict[str, Any] = {
            "ts_ms": now_ms(),
            "event_type": "STREAMING_LOG",
            "log_type": entry.type,
            "message": entry.message,
        }
        if data is not None:
            record["data"] = data
        log_event(record)

        self.emit(LiveEvent.LOG, entry)
        return entry

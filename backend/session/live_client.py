"""
Live streaming session client.

Responsibilities:
- Owns the session handle and the tri-state connection status
- Gates every outbound operation on status == CONNECTED
- Wires transport callbacks into the message dispatcher
- Publishes events and streaming log entries on an owned EventBus

Failure policy:
- Nothing raises into caller code. Connect failures, transport errors,
  closes and not-connected sends all surface as `error` / `close` events
  plus log entries.

Concurrency:
- Single event loop. connect() is the only coroutine; while it awaits the
  transport, status is pinned to CONNECTING and re-entrant connects fail.
- Everything else is synchronous and hands off to the transport.
"""

from __future__ import annotations

import asyncio
from typing import Any, Mapping, Sequence

from adapters.live.base import (
    SessionHandle,
    SessionTransport,
    TransportCallbacks,
    TransportClose,
    TransportError,
)
from constants import (
    CONNECT_ERROR_PREFIX,
    CONNECT_FAILED_MESSAGE,
    DEFAULT_LIVE_API_MODEL,
    LOG_CLIENT_CLOSE,
    LOG_CLIENT_ERROR,
    LOG_CLIENT_OPEN,
    LOG_CLIENT_REALTIME_INPUT,
    LOG_CLIENT_SEND,
    LOG_CLIENT_TOOL_RESPONSE,
    LOG_SERVER_CLOSE,
    LOG_SERVER_ERROR,
    LOG_SERVER_OPEN,
    NOT_CONNECTED_MESSAGE,
)
from observability.event_bus import EventBus, Handler, LiveEvent
from observability.logger import log_event, now_ms
from protocol.dispatcher import MessageDispatcher
from session.close_reason import extract_close_reason
from session.connection_status import ConnectionStatus
from session.realtime import RealtimeChunk, classify_realtime_chunks


class LiveClient:
    """
    One client per user session, with fixed model identity.

    The transport carries the auth capability (API key / token).
    """

    def __init__(
        self,
        *,
        transport: SessionTransport,
        model: str = DEFAULT_LIVE_API_MODEL,
        bus: EventBus | None = None,
    ) -> None:
        self.model = model
        self._transport = transport
        self._bus = bus if bus is not None else EventBus()
        self._dispatcher = MessageDispatcher(self._bus)

        self._status = ConnectionStatus.DISCONNECTED
        self._session: SessionHandle | None = None

        # Bumped per connect attempt; callbacks from older sessions are ignored
        self._generation = 0

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def connected(self) -> bool:
        return self._status is ConnectionStatus.CONNECTED

    @property
    def bus(self) -> EventBus:
        return self._bus

    def on(self, event: LiveEvent | str, handler: Handler) -> None:
        self._bus.on(event, handler)

    def off(self, event: LiveEvent | str, handler: Handler) -> None:
        self._bus.off(event, handler)

    # ------------------------------------------------------------------
    # Connection state machine
    # ------------------------------------------------------------------

    async def connect(self, config: Mapping[str, Any]) -> bool:
        """
        Open a session. Single attempt, no retry.

        Returns False immediately (no transport call) unless DISCONNECTED.
        """
        if self._status is not ConnectionStatus.DISCONNECTED:
            return False

        self._status = ConnectionStatus.CONNECTING
        self._generation += 1
        generation = self._generation
        callbacks = self._callbacks_for(generation)

        try:
            session = await self._transport.open(self.model, config, callbacks)
        except asyncio.CancelledError:
            if generation == self._generation:
                self._status = ConnectionStatus.DISCONNECTED
                self._session = None
            raise
        except Exception as e:  # pylint: disable=broad-exception-caught
            if generation != self._generation:
                # A newer attempt owns the state machine now
                self._log_abandoned_attempt(generation, "open_failed")
                return False
            self._status = ConnectionStatus.DISCONNECTED
            self._session = None
            self._handle_error(TransportError(message=str(e) or CONNECT_FAILED_MESSAGE, error=e))
            return False

        if generation != self._generation or self._status is not ConnectionStatus.CONNECTING:
            # Superseded while opening
            self._log_abandoned_attempt(generation, "late_handle_closed")
            session.close()
            return False

        self._session = session
        self._status = ConnectionStatus.CONNECTED
        self._bus.log(LOG_CLIENT_OPEN, f"Connected to {self.model}")
        self._bus.emit(LiveEvent.OPEN)
        return True

    def disconnect(self) -> bool:
        """Drop the session unconditionally. Idempotent; always True."""
        session, self._session = self._session, None
        if session is not None:
            session.close()
        self._status = ConnectionStatus.DISCONNECTED
        self._bus.log(LOG_CLIENT_CLOSE, "Disconnected")
        return True

    # ------------------------------------------------------------------
    # Outbound gateway
    # ------------------------------------------------------------------

    def send(
        self,
        parts: Mapping[str, Any] | Sequence[Mapping[str, Any]],
        turn_complete: bool = True,
    ) -> None:
        """Send parts as the next user turn."""
        session = self._require_session()
        if session is None:
            return

        turns = [parts] if isinstance(parts, Mapping) else list(parts)
        if not self._hand_off(session.send_turn, turns, turn_complete):
            return
        self._bus.log(LOG_CLIENT_SEND, parts)

    def send_realtime_input(self, chunks: Sequence[RealtimeChunk]) -> None:
        """Forward each chunk as its own transport send, in order."""
        session = self._require_session()
        if session is None:
            return

        for chunk in chunks:
            if not self._hand_off(session.send_realtime, chunk.to_wire()):
                return

        self._bus.log(LOG_CLIENT_REALTIME_INPUT, classify_realtime_chunks(chunks))

    def send_tool_response(self, tool_response: Mapping[str, Any]) -> None:
        """
        Answer tool calls.

        An empty functionResponses list is not sent but is still logged.
        """
        session = self._require_session()
        if session is None:
            return

        raw_responses = tool_response.get("functionResponses") or ()
        function_responses = (
            [raw_responses] if isinstance(raw_responses, Mapping) else list(raw_responses)
        )
        if function_responses:
            if not self._hand_off(session.send_tool_response, function_responses):
                return

        self._bus.log(LOG_CLIENT_TOOL_RESPONSE, {"toolResponse": dict(tool_response)})

    # ------------------------------------------------------------------
    # Transport callbacks
    # ------------------------------------------------------------------

    def _callbacks_for(self, generation: int) -> TransportCallbacks:
        def is_current(callback: str) -> bool:
            if generation == self._generation:
                return True
            log_event({
                "ts_ms": now_ms(),
                "event_type": "STALE_TRANSPORT_CALLBACK",
                "callback": callback,
                "generation": generation,
                "current_generation": self._generation,
            })
            return False

        def on_open() -> None:
            if is_current("open"):
                self._handle_open()

        def on_message(raw: Mapping[str, Any]) -> None:
            if is_current("message"):
                self._handle_message(raw)

        def on_error(error: TransportError) -> None:
            if is_current("error"):
                self._handle_error(error)

        def on_close(close: TransportClose) -> None:
            if is_current("close"):
                self._handle_close(close)

        return TransportCallbacks(
            on_open=on_open,
            on_message=on_message,
            on_error=on_error,
            on_close=on_close,
        )

    def _handle_open(self) -> None:
        # open is emitted by connect() once the handle is stored
        self._bus.log(LOG_SERVER_OPEN, "open")

    def _handle_message(self, raw: Mapping[str, Any]) -> None:
        if self._status is ConnectionStatus.DISCONNECTED:
            log_event({
                "ts_ms": now_ms(),
                "event_type": "MESSAGE_WHILE_DISCONNECTED",
                "keys": sorted(raw),
            })
            return
        self._dispatcher.on_raw_message(raw)

    def _handle_error(self, error: TransportError) -> None:
        self._status = ConnectionStatus.DISCONNECTED
        self._drop_session()

        self._bus.log(LOG_SERVER_ERROR, f"{CONNECT_ERROR_PREFIX}: {error.message}")
        self._bus.emit(LiveEvent.ERROR, error.message)

    def _handle_close(self, close: TransportClose) -> None:
        self._status = ConnectionStatus.DISCONNECTED
        self._drop_session()

        reason = extract_close_reason(close.reason)
        self._bus.log(
            LOG_SERVER_CLOSE,
            f"disconnected with reason: {reason}" if reason else "disconnected",
            {"code": close.code} if close.code is not None else None,
        )
        self._bus.emit(LiveEvent.CLOSE, reason)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _drop_session(self) -> None:
        session, self._session = self._session, None
        if session is not None:
            session.close()

    def _require_session(self) -> SessionHandle | None:
        if self._status is ConnectionStatus.CONNECTED and self._session is not None:
            return self._session
        self._report_client_error(NOT_CONNECTED_MESSAGE)
        return None

    def _hand_off(self, send: Any, *args: Any) -> bool:
        """Call one transport send; a synchronous rejection becomes an error event."""
        try:
            send(*args)
        except Exception as e:  # pylint: disable=broad-exception-caught
            self._report_client_error(f"Transport rejected send: {e}")
            return False
        return True

    def _report_client_error(self, message: str) -> None:
        self._bus.log(LOG_CLIENT_ERROR, message)
        self._bus.emit(LiveEvent.ERROR, message)

    def _log_abandoned_attempt(self, generation: int, outcome: str) -> None:
        log_event({
            "ts_ms": now_ms(),
            "event_type": "CONNECT_ATTEMPT_ABANDONED",
            "outcome": outcome,
            "generation": generation,
            "current_generation": self._generation,
        })

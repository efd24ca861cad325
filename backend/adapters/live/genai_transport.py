"""
Gemini Live session transport (google-genai).

Role in the system:
- Opens one Live API websocket session per open() call.
- Converts each LiveServerMessage into the camelCase wire dict understood by
  protocol.messages (inline audio re-encoded as base64 text).
- Serializes outbound sends through a single per-session sender task so
  chunks leave in call order; callers never await.
- Decodes outbound payloads before queueing, so malformed input raises
  from the send call and the session stays up.

Lifecycle:
- One receive task and one send task per session.
- The SDK consumes the server's setupComplete during connect, so the
  receive task replays a synthetic {"setupComplete": {}} first.
- websockets.ConnectionClosed (or the stream ending) -> on_close.
- Any other receive/send failure -> on_error.
- close() cancels both tasks and exits the SDK session asynchronously,
  then reports a normal close (code 1000).

No retries, no timeouts, no buffering policy live here.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping, Sequence

from google import genai
from google.genai import types
from websockets.exceptions import ConnectionClosed

from adapters.live.base import (
    SessionHandle,
    SessionTransport,
    TransportCallbacks,
    TransportClose,
    TransportError,
)
from audio.pcm import base64_to_bytes, bytes_to_base64
from observability.logger import log_event, now_ms


NORMAL_CLOSURE_CODE = 1000

SETUP_COMPLETE_MESSAGE: Mapping[str, Any] = {"setupComplete": {}}

SendOp = Callable[[], Awaitable[Any]]


# ------------------------------------------------------------------
# Wire conversion
# ------------------------------------------------------------------

def _jsonable(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return bytes_to_base64(bytes(value))
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def server_message_to_wire(message: types.LiveServerMessage) -> dict[str, Any]:
    """camelCase dict with base64 text in place of raw bytes."""
    dumped = message.model_dump(by_alias=True, exclude_none=True)
    return _jsonable(dumped)


def part_from_wire(part: Mapping[str, Any]) -> types.Part:
    inline = part.get("inlineData")
    if isinstance(inline, Mapping):
        return types.Part(
            inline_data=types.Blob(
                mime_type=inline.get("mimeType"),
                data=base64_to_bytes(str(inline.get("data") or "")),
            )
        )
    return types.Part.model_validate(dict(part))


def _close_from_exception(exc: ConnectionClosed) -> TransportClose:
    frame = exc.rcvd
    if frame is None:
        return TransportClose(code=None, reason="")
    return TransportClose(code=frame.code, reason=frame.reason or "")


# ------------------------------------------------------------------
# Session handle
# ------------------------------------------------------------------

class GenAISessionHandle(SessionHandle):
    """One open google-genai AsyncSession."""

    def __init__(
        self,
        *,
        context: Any,
        session: Any,
        callbacks: TransportCallbacks,
    ) -> None:
        self._context = context
        self._session = session
        self._callbacks = callbacks

        self._outbox: asyncio.Queue[SendOp] = asyncio.Queue()
        self._recv_task: asyncio.Task[None] | None = None
        self._send_task: asyncio.Task[None] | None = None
        self._closed = False
        self._finished = False

    def start(self) -> None:
        loop = asyncio.get_running_loop()
        self._recv_task = loop.create_task(self._receive_loop())
        self._send_task = loop.create_task(self._send_loop())

    # ------------------------------------------------------------------
    # SessionHandle
    # ------------------------------------------------------------------

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        current = asyncio.current_task()
        for task in (self._recv_task, self._send_task):
            if task is not None and task is not current and not task.done():
                task.cancel()

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            log_event({
                "ts_ms": now_ms(),
                "event_type": "LIVE_SESSION_CLOSE_WITHOUT_LOOP",
            })
            return
        loop.create_task(self._aclose())

    def send_turn(self, turns: Sequence[Mapping[str, Any]], turn_complete: bool) -> None:
        # Decoded eagerly: malformed payloads raise to the caller
        content = types.Content(
            role="user",
            parts=[part_from_wire(p) for p in turns],
        )

        async def op() -> None:
            await self._session.send_client_content(
                turns=content,
                turn_complete=turn_complete,
            )
        self._enqueue(op)

    def send_realtime(self, media: Mapping[str, Any]) -> None:
        blob = types.Blob(
            mime_type=media.get("mimeType"),
            data=base64_to_bytes(str(media.get("data") or "")),
        )

        async def op() -> None:
            await self._session.send_realtime_input(media=blob)
        self._enqueue(op)

    def send_tool_response(self, function_responses: Sequence[Mapping[str, Any]]) -> None:
        responses = [types.FunctionResponse.model_validate(dict(fr)) for fr in function_responses]

        async def op() -> None:
            await self._session.send_tool_response(function_responses=responses)
        self._enqueue(op)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _enqueue(self, op: SendOp) -> None:
        if self._closed:
            log_event({
                "ts_ms": now_ms(),
                "event_type": "LIVE_SEND_AFTER_CLOSE",
            })
            return
        self._outbox.put_nowait(op)

    async def _send_loop(self) -> None:
        while True:
            op = await self._outbox.get()
            try:
                await op()
            except ConnectionClosed as exc:
                self._finish_close(_close_from_exception(exc))
                return
            except Exception as exc:  # pylint: disable=broad-exception-caught
                self._finish_error(exc)
                return

    async def _receive_loop(self) -> None:
        # The SDK consumes the server's setup response inside connect();
        # replay it so consumers still observe setupcomplete first.
        self._callbacks.on_message(SETUP_COMPLETE_MESSAGE)
        try:
            while not self._closed:
                received = False
                # receive() ends after each turnComplete; re-enter until the
                # socket goes away
                async for message in self._session.receive():
                    received = True
                    self._callbacks.on_message(server_message_to_wire(message))
                if not received:
                    break
        except ConnectionClosed as exc:
            self._finish_close(_close_from_exception(exc))
            return
        except Exception as exc:  # pylint: disable=broad-exception-caught
            self._finish_error(exc)
            return

        self._finish_close(TransportClose(code=None, reason=""))

    async def _aclose(self) -> None:
        try:
            await self._context.__aexit__(None, None, None)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "ts_ms": now_ms(),
                "event_type": "LIVE_SESSION_CLOSE_ERROR",
                "exception": type(exc).__name__,
                "message": str(exc),
            })
        self._finish_close(TransportClose(code=NORMAL_CLOSURE_CODE, reason=""))

    def _finish_close(self, close: TransportClose) -> None:
        if self._finished:
            return
        self._finished = True
        log_event({
            "ts_ms": now_ms(),
            "event_type": "LIVE_SESSION_CLOSED",
            "code": close.code,
            "reason": close.reason,
        })
        self._callbacks.on_close(close)

    def _finish_error(self, exc: BaseException) -> None:
        if self._finished:
            return
        self._finished = True
        log_event({
            "ts_ms": now_ms(),
            "event_type": "LIVE_SESSION_ERROR",
            "exception": type(exc).__name__,
            "message": str(exc),
        })
        self._callbacks.on_error(TransportError(message=str(exc), error=exc))


# ------------------------------------------------------------------
# Transport
# ------------------------------------------------------------------

class GenAILiveTransport(SessionTransport):
    """
    Session factory over google-genai's async Live API.

    One transport may open many sessions; each open() returns an
    independent handle.
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        client: genai.Client | None = None,
    ) -> None:
        if client is None:
            client = genai.Client(api_key=api_key)
        self._client = client

    async def open(
        self,
        model: str,
        config: Mapping[str, Any],
        callbacks: TransportCallbacks,
    ) -> SessionHandle:
        connect_config = types.LiveConnectConfig.model_validate(dict(config))

        context = self._client.aio.live.connect(model=model, config=connect_config)
        session = await context.__aenter__()

        log_event({
            "ts_ms": now_ms(),
            "event_type": "LIVE_SESSION_OPENED",
            "model": model,
        })

        handle = GenAISessionHandle(context=context, session=session, callbacks=callbacks)
        callbacks.on_open()
        handle.start()
        return handle

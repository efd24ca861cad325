"""
Live session transport contract.

This module defines the *interface only*: opening a duplex channel to the
backend, sending on it, and reporting inbound traffic through callbacks.

Key invariants:
- open() is the only asynchronous operation; it may raise, and the client
  converts any exception into a failed connect.
- SessionHandle send methods hand work off and return immediately; delivery
  failures are reported later through on_error. Malformed payloads raise
  from the send call itself.
- Callbacks are invoked on the event loop thread that owns the client.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Sequence


@dataclass(frozen=True)
class TransportClose:
    """Close notification (websocket close code + reason text)."""
    code: int | None = None
    reason: str = ""


@dataclass(frozen=True)
class TransportError:
    """Error notification carrying a human-readable message."""
    message: str
    error: BaseException | None = None


@dataclass(frozen=True)
class TransportCallbacks:
    """Entry points the transport drives for one session."""
    on_open: Callable[[], None]
    on_message: Callable[[Mapping[str, Any]], None]
    on_error: Callable[[TransportError], None]
    on_close: Callable[[TransportClose], None]


class SessionHandle(ABC):
    """
    Capability for one open session.

    Exclusively owned by the client that opened it.
    """

    @abstractmethod
    def close(self) -> None:
        """
        Close the session.

        Must be idempotent and must not raise.
        """
        raise NotImplementedError

    @abstractmethod
    def send_turn(self, turns: Sequence[Mapping[str, Any]], turn_complete: bool) -> None:
        """Send parts as the next conversational turn."""
        raise NotImplementedError

    @abstractmethod
    def send_realtime(self, media: Mapping[str, Any]) -> None:
        """Send one realtime chunk: {"mimeType": ..., "data": <base64>}."""
        raise NotImplementedError

    @abstractmethod
    def send_tool_response(self, function_responses: Sequence[Mapping[str, Any]]) -> None:
        """Send function-response records for previously received tool calls."""
        raise NotImplementedError


class SessionTransport(ABC):
    """Factory for live sessions."""

    @abstractmethod
    async def open(
        self,
        model: str,
        config: Mapping[str, Any],
        callbacks: TransportCallbacks,
    ) -> SessionHandle:
        """
        Open a session against `model` with the camelCase connect config.

        Implementations call callbacks.on_open once the channel is up and may
        do so before this coroutine returns. No timeout is applied here.
        """
        raise NotImplementedError

"""
Route registration for the live session console.

Responsibilities:
- Define HTTP and WebSocket endpoints
- Wire a LiveBridge to each WebSocket lifecycle
- Pull dependencies from app.state
"""

from __future__ import annotations

import asyncio
import json

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from adapters.live.base import SessionTransport
from observability.logger import log_event, now_ms
from session.bridge import BridgeResult, LiveBridge


def register_routes(app: FastAPI) -> None:
    """Register all routes on the FastAPI app."""
    @app.get("/health")
    async def health() -> dict[str, str]: # pyright: ignore[reportUnusedFunction]
        return {"status": "ok"}

    @app.websocket("/live")
    async def live_endpoint(ws: WebSocket) -> None: # pyright: ignore[reportUnusedFunction]
        await ws.accept()

        transport: SessionTransport = app.state.live_transport

        bridge = LiveBridge(
            config=app.state.config,
            transport=transport,
        )

        pump = asyncio.create_task(_pump_frames(ws, bridge))

        try:
            while True:
                msg = await ws.receive()

                if msg["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect()

                if msg.get("text") is not None:
                    await bridge.on_json_message(msg["text"])

                elif msg.get("bytes") is not None:
                    bridge.on_binary_message(msg["bytes"])

        except WebSocketDisconnect:
            bridge.on_ws_disconnect(reason="client_disconnect")

        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "ts_ms": now_ms(),
                "event_type": "WS_FATAL_ERROR",
                "bridge_id": bridge.bridge_id,
                "exception": type(exc).__name__,
                "message": str(exc),
            })
            bridge.on_ws_disconnect(reason="server_error")

        finally:
            pump.cancel()


async def _pump_frames(ws: WebSocket, bridge: LiveBridge) -> None:
    """Flush bridge frames as client events arrive."""
    try:
        while True:
            await bridge.wait_for_frames()
            await _flush_bridge_result(ws, bridge.drain())
    except (WebSocketDisconnect, RuntimeError) as exc:
        # Socket already gone; the receive loop handles teardown
        log_event({
            "ts_ms": now_ms(),
            "event_type": "WS_SEND_FAILED",
            "bridge_id": bridge.bridge_id,
            "exception": type(exc).__name__,
            "message": str(exc),
        })


async def _flush_bridge_result(
    ws: WebSocket,
    result: BridgeResult,
) -> None:
    for frame in result.frames:
        if isinstance(frame, bytes):
            await ws.send_bytes(frame)
        else:
            await ws.send_text(json.dumps(frame))

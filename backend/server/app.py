"""
FastAPI app factory.

Responsibilities:
- Create and configure FastAPI app
- Set up middleware
- Initialize shared resources (live session transport)
- Register routes
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from adapters.live.base import SessionTransport
from adapters.live.genai_transport import GenAILiveTransport
from config import AppConfig
from observability.logger import set_json_logs_enabled

from server.routes import register_routes


def create_app(
    config: AppConfig | None = None,
    transport: SessionTransport | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    config and transport are injectable for tests; by default both come
    from the environment.
    """
    if config is None:
        config = AppConfig.load_from_env()

    set_json_logs_enabled(config.enable_json_logs)

    app = FastAPI(title="Live Session Console")

    app.state.config = config

    # Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # tighten later
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # One transport per process; sessions are per websocket
    if transport is None:
        transport = build_live_transport(config)
    app.state.live_transport = transport

    # Routes
    register_routes(app)

    return app


def build_live_transport(config: AppConfig) -> SessionTransport:
    """Build the Gemini Live transport from the configured API key."""
    if not config.gemini_api_key:
        raise RuntimeError("GEMINI_API_KEY environment variable not set")
    return GenAILiveTransport(api_key=config.gemini_api_key)

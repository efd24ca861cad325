"""
ASGI entry point for the live session console.

    uvicorn server.asgi:app --app-dir backend

.env is loaded before the environment is snapshotted into AppConfig.
"""

from dotenv import load_dotenv

load_dotenv()

# pylint: disable=wrong-import-position
from config import AppConfig
from observability.logger import log_event, now_ms
from server.app import create_app

config = AppConfig.load_from_env()
app = create_app(config)

log_event({
    "ts_ms": now_ms(),
    "event_type": "APP_STARTUP",
    "env": config.env,
    "live_model": config.live_model,
    "voice": config.voice,
})

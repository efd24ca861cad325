"""
Application configuration.

Responsibilities:
- Load deployment-specific configuration
- Read environment variables
- Provide a typed, immutable config object

Non-responsibilities:
- No connection logic
- No protocol constants
- No runtime mutation
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from constants import DEFAULT_LIVE_API_MODEL, DEFAULT_VOICE


def _env_flag(name: str, default: str = "1") -> bool:
    return os.environ.get(name, default) == "1"


@dataclass(frozen=True)
class AppConfig:
    """
    Immutable application configuration.

    Constructed once at process startup.
    Passed downward to the bridge server and live session settings.
    """

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------

    env: str
    log_level: str

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    enable_json_logs: bool

    # ------------------------------------------------------------------
    # Live API
    # ------------------------------------------------------------------

    gemini_api_key: str | None
    live_model: str
    voice: str
    system_prompt: str

    input_transcription: bool
    output_transcription: bool

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @staticmethod
    def load_from_env() -> AppConfig:
        """
        Load configuration from environment variables.

        Missing optional variables fall back to defaults; the API key is
        left as None and checked by the server factory.
        """
        return AppConfig(
            env=os.environ.get("ENV", "dev"),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),

            enable_json_logs=_env_flag("ENABLE_JSON_LOGS"),

            gemini_api_key=os.environ.get("GEMINI_API_KEY"),
            live_model=os.environ.get("LIVE_MODEL", DEFAULT_LIVE_API_MODEL),
            voice=os.environ.get("LIVE_VOICE", DEFAULT_VOICE),
            system_prompt=os.environ.get("SYSTEM_PROMPT", ""),

            input_transcription=_env_flag("INPUT_TRANSCRIPTION"),
            output_transcription=_env_flag("OUTPUT_TRANSCRIPTION"),
        )

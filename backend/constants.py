"""
Live session constants.

Single source of truth for values that shape runtime behavior of the
live session client.

Rules:
- If changing a value changes runtime behavior, it belongs here.
- No magic strings for log tags or mime prefixes elsewhere in the codebase.
"""

from __future__ import annotations

from typing import Final, Tuple

# =============================================================================
# Model / voice defaults
# =============================================================================

DEFAULT_LIVE_API_MODEL: Final[str] = "gemini-2.5-flash-native-audio-preview-09-2025"

DEFAULT_VOICE: Final[str] = "Zephyr"

AVAILABLE_VOICES: Final[Tuple[str, ...]] = (
    "Zephyr", "Puck", "Charon", "Luna", "Nova", "Kore", "Fenrir", "Leda",
    "Orus", "Aoede", "Callirrhoe", "Autonoe", "Enceladus", "Iapetus",
    "Umbriel", "Algieba", "Despina", "Erinome", "Algenib", "Rasalgethi",
    "Laomedeia", "Achernar", "Alnilam", "Schedar", "Gacrux", "Pulcherrima",
    "Achird", "Zubenelgenubi", "Vindemiatrix", "Sadachbia", "Sadaltager",
    "Sulafat",
)

# =============================================================================
# Audio format
# =============================================================================

# Model-turn parts whose mime type starts with this prefix are decoded as audio
AUDIO_PCM_MIME_PREFIX: Final[str] = "audio/pcm"

INPUT_SAMPLE_RATE_HZ: Final[int] = 16_000   # microphone -> model
OUTPUT_SAMPLE_RATE_HZ: Final[int] = 24_000  # model -> speaker
AUDIO_SAMPLE_WIDTH_BYTES: Final[int] = 2    # PCM16 (signed 16-bit)

MIC_CHUNK_MIME_TYPE: Final[str] = f"audio/pcm;rate={INPUT_SAMPLE_RATE_HZ}"

# Substrings used to classify realtime chunks for logging
REALTIME_AUDIO_MIME_MARKER: Final[str] = "audio"
REALTIME_IMAGE_MIME_MARKER: Final[str] = "image"

# =============================================================================
# Close reason extraction
# =============================================================================

CLOSE_REASON_ERROR_HINT: Final[str] = "error"
CLOSE_REASON_MARKER: Final[str] = "ERROR]"

# =============================================================================
# Error messages
# =============================================================================

NOT_CONNECTED_MESSAGE: Final[str] = "Client is not connected"
CONNECT_FAILED_MESSAGE: Final[str] = "Failed to connect."
CONNECT_ERROR_PREFIX: Final[str] = "Could not connect to GenAI Live"

# =============================================================================
# Streaming log type tags
# =============================================================================

LOG_CLIENT_OPEN: Final[str] = "client.open"
LOG_CLIENT_CLOSE: Final[str] = "client.close"
LOG_CLIENT_SEND: Final[str] = "client.send"
LOG_CLIENT_REALTIME_INPUT: Final[str] = "client.realtimeInput"
LOG_CLIENT_TOOL_RESPONSE: Final[str] = "client.toolResponse"
LOG_CLIENT_ERROR: Final[str] = "client.error"

LOG_SERVER_OPEN: Final[str] = "server.open"
LOG_SERVER_SETUP_COMPLETE: Final[str] = "server.setupComplete"
LOG_SERVER_TOOL_CALL: Final[str] = "server.toolCall"
LOG_RECEIVE_TOOL_CALL_CANCELLATION: Final[str] = "receive.toolCallCancellation"
LOG_RECEIVE_SERVER_CONTENT: Final[str] = "receive.serverContent"
LOG_SERVER_INPUT_TRANSCRIPTION: Final[str] = "server.inputTranscription"
LOG_SERVER_OUTPUT_TRANSCRIPTION: Final[str] = "server.outputTranscription"
LOG_SERVER_AUDIO: Final[str] = "server.audio"
LOG_SERVER_CONTENT: Final[str] = "server.content"
LOG_SERVER_TURN_COMPLETE: Final[str] = "server.send"
LOG_SERVER_ERROR: Final[str] = "server.error"
LOG_SERVER_CLOSE: Final[str] = "server.close"

# =============================================================================
# Log retention (consumer side)
# =============================================================================

LOG_STORE_MAX_ENTRIES_DEFAULT: Final[int] = 500

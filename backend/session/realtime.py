"""
Realtime input chunks and their log classification.

One chunk == one transport send; chunks are never batched.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from constants import REALTIME_AUDIO_MIME_MARKER, REALTIME_IMAGE_MIME_MARKER


class InvalidRealtimeChunk(ValueError):
    """Raised when a wire chunk lacks a string mimeType or data field."""


@dataclass(frozen=True)
class RealtimeChunk:
    """Pre-encoded media chunk: mime type + base64 payload."""
    mime_type: str
    data: str

    def to_wire(self) -> dict[str, str]:
        return {"mimeType": self.mime_type, "data": self.data}

    @staticmethod
    def from_wire(raw: Mapping[str, Any]) -> RealtimeChunk:
        mime_type = raw.get("mimeType")
        data = raw.get("data")
        if not isinstance(mime_type, str) or not isinstance(data, str):
            raise InvalidRealtimeChunk(f"Malformed realtime chunk: {sorted(raw)}")
        return RealtimeChunk(mime_type=mime_type, data=data)


def classify_realtime_chunks(chunks: Iterable[RealtimeChunk]) -> str:
    """
    Label a chunk batch for logging.

    Returns "audio + video", "audio", "video" or "unknown". The scan stops
    as soon as both kinds have been seen.
    """
    has_audio = False
    has_video = False
    for chunk in chunks:
        if REALTIME_AUDIO_MIME_MARKER in chunk.mime_type:
            has_audio = True
        if REALTIME_IMAGE_MIME_MARKER in chunk.mime_type:
            has_video = True
        if has_audio and has_video:
            break

    if has_audio and has_video:
        return "audio + video"
    if has_audio:
        return "audio"
    if has_video:
        return "video"
    return "unknown"

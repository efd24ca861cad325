"""
Model-turn audio demultiplexer.

Splits a model turn's parts into decoded audio buffers and the remaining
(non-audio) parts. Pure: no events, no logging.

- Stable partition by predicate (PCM inline data vs everything else);
  duplicate-valued parts are never conflated
- Both groups keep their original relative order
- Audio parts with an empty payload produce no buffer
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from audio.pcm import base64_to_bytes
from protocol.messages import ContentPart, InlineDataPart, is_audio_part


@dataclass(frozen=True)
class ModelTurnSplit:
    audio_parts: tuple[InlineDataPart, ...]
    remaining_parts: tuple[ContentPart, ...]

    def remaining_content(self) -> dict[str, Any] | None:
        """
        New model-turn content record built from the remaining parts.

        None when there is nothing left to re-emit.
        """
        if not self.remaining_parts:
            return None
        return {
            "modelTurn": {
                "parts": [_raw(part) for part in self.remaining_parts],
            },
        }


def _raw(part: ContentPart) -> Any:
    return dict(part.raw)


def split_model_turn(parts: Iterable[ContentPart]) -> ModelTurnSplit:
    audio: list[InlineDataPart] = []
    remaining: list[ContentPart] = []
    for part in parts:
        if is_audio_part(part):
            audio.append(part)
        else:
            remaining.append(part)
    return ModelTurnSplit(audio_parts=tuple(audio), remaining_parts=tuple(remaining))


def decode_audio_part(part: InlineDataPart) -> bytes | None:
    """
    Decode one audio part's payload.

    Returns None for an empty payload. Raises AudioDecodeError on bad base64.
    """
    if not part.data:
        return None
    return base64_to_bytes(part.data)

"""
Inbound live protocol messages as an explicit sum type.

Wire shape (one message per transport callback, camelCase keys):

    {
      "setupComplete": {...},
      "toolCall": {"functionCalls": [...]},
      "toolCallCancellation": {"ids": [...]},
      "serverContent": {
        "interrupted": true,
        "inputTranscription": {"text": "...", "isFinal": false},
        "outputTranscription": {"text": "...", "isFinal": false},
        "modelTurn": {"parts": [...]},
        "turnComplete": true
      }
    }

Classification precedence follows the field order above: the first present
top-level field decides the variant and the rest of the message is ignored.
Presence means "key present with a non-null value"; an empty object such as
"setupComplete": {} is present.

serverContent is NOT a sum type: its signals are independent and may
co-occur. Only `interrupted` is exclusive, which the dispatcher enforces.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, TypeGuard, Union

from constants import AUDIO_PCM_MIME_PREFIX


def _mapping(value: Any) -> Mapping[str, Any] | None:
    return value if isinstance(value, Mapping) else None


# ---------------------------------------------------------------------
# Content parts
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class InlineDataPart:
    """
    Part carrying inline binary data.

    data is the base64 text exactly as received; raw is the original part
    so it can be re-emitted untouched.
    """
    mime_type: str
    data: str
    raw: Mapping[str, Any] = field(repr=False)

    @property
    def is_pcm_audio(self) -> bool:
        return self.mime_type.startswith(AUDIO_PCM_MIME_PREFIX)


@dataclass(frozen=True)
class OpaquePart:
    """Any other part (text, function call echo, executable code, ...)."""
    raw: Mapping[str, Any]


ContentPart = Union[InlineDataPart, OpaquePart]


def parse_content_part(raw: Mapping[str, Any]) -> ContentPart:
    inline = _mapping(raw.get("inlineData"))
    if inline is not None:
        return InlineDataPart(
            mime_type=str(inline.get("mimeType") or ""),
            data=str(inline.get("data") or ""),
            raw=raw,
        )
    return OpaquePart(raw=raw)


def is_audio_part(part: ContentPart) -> TypeGuard[InlineDataPart]:
    """Demultiplexer predicate: inline data with a PCM audio mime type."""
    return isinstance(part, InlineDataPart) and part.is_pcm_audio


# ---------------------------------------------------------------------
# serverContent signals
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class Transcription:
    text: str
    is_final: bool = False


@dataclass(frozen=True)
class ModelTurn:
    parts: tuple[ContentPart, ...] = ()


@dataclass(frozen=True)
class ServerContent:
    """Independent optional signals of one serverContent record."""
    interrupted: bool = False
    input_transcription: Transcription | None = None
    output_transcription: Transcription | None = None
    model_turn: ModelTurn | None = None
    turn_complete: bool = False


def _parse_transcription(value: Any) -> Transcription | None:
    raw = _mapping(value)
    if raw is None:
        return None
    return Transcription(
        text=str(raw.get("text") or ""),
        is_final=bool(raw.get("isFinal", False)),
    )


def _parse_model_turn(value: Any) -> ModelTurn | None:
    raw = _mapping(value)
    if raw is None:
        return None
    parts = raw.get("parts") or ()
    return ModelTurn(
        parts=tuple(parse_content_part(p) for p in parts if isinstance(p, Mapping)),
    )


def parse_server_content(raw: Mapping[str, Any]) -> ServerContent:
    return ServerContent(
        interrupted=bool(raw.get("interrupted")),
        input_transcription=_parse_transcription(raw.get("inputTranscription")),
        output_transcription=_parse_transcription(raw.get("outputTranscription")),
        model_turn=_parse_model_turn(raw.get("modelTurn")),
        turn_complete=bool(raw.get("turnComplete")),
    )


# ---------------------------------------------------------------------
# Inbound message variants
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class SetupComplete:
    raw: Mapping[str, Any] = field(default_factory=dict, repr=False)


@dataclass(frozen=True)
class ToolCall:
    payload: Mapping[str, Any]
    raw: Mapping[str, Any] = field(default_factory=dict, repr=False)


@dataclass(frozen=True)
class ToolCallCancellation:
    payload: Mapping[str, Any]
    raw: Mapping[str, Any] = field(default_factory=dict, repr=False)


@dataclass(frozen=True)
class ServerContentMessage:
    content: ServerContent
    raw: Mapping[str, Any] = field(default_factory=dict, repr=False)


@dataclass(frozen=True)
class UnknownMessage:
    """Messages with none of the known fields (usage metadata, goAway, ...)."""
    raw: Mapping[str, Any] = field(default_factory=dict, repr=False)


InboundMessage = Union[
    SetupComplete,
    ToolCall,
    ToolCallCancellation,
    ServerContentMessage,
    UnknownMessage,
]


def parse_inbound_message(raw: Mapping[str, Any]) -> InboundMessage:
    """
    Classify one wire message.

    Pure function; never raises for mapping input.
    """
    if raw.get("setupComplete") is not None:
        return SetupComplete(raw=raw)

    tool_call = _mapping(raw.get("toolCall"))
    if tool_call is not None:
        return ToolCall(payload=tool_call, raw=raw)

    cancellation = _mapping(raw.get("toolCallCancellation"))
    if cancellation is not None:
        return ToolCallCancellation(payload=cancellation, raw=raw)

    server_content = _mapping(raw.get("serverContent"))
    if server_content is not None:
        return ServerContentMessage(
            content=parse_server_content(server_content),
            raw=raw,
        )

    return UnknownMessage(raw=raw)

"""
Live connect configuration.

Builds the camelCase config dict handed to LiveClient.connect() from user
settings. Tool catalogs themselves live outside this package; only their
declaration shape is known here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from config import AppConfig
from constants import AVAILABLE_VOICES, DEFAULT_LIVE_API_MODEL, DEFAULT_VOICE


@dataclass(frozen=True)
class ToolDefinition:
    """A function the model may call, with an on/off switch."""
    name: str
    description: str
    parameters: Mapping[str, Any] | None = None
    is_enabled: bool = True

    def to_declaration(self) -> dict[str, Any]:
        declaration: dict[str, Any] = {
            "name": self.name,
            "description": self.description,
        }
        if self.parameters is not None:
            declaration["parameters"] = dict(self.parameters)
        return declaration


@dataclass(frozen=True)
class LiveSettings:
    model: str = DEFAULT_LIVE_API_MODEL
    voice: str = DEFAULT_VOICE
    system_prompt: str = ""
    input_transcription: bool = True
    output_transcription: bool = True
    tools: Sequence[ToolDefinition] = field(default_factory=tuple)

    @staticmethod
    def from_app_config(
        config: AppConfig,
        tools: Sequence[ToolDefinition] = (),
    ) -> LiveSettings:
        return LiveSettings(
            model=config.live_model,
            voice=config.voice,
            system_prompt=config.system_prompt,
            input_transcription=config.input_transcription,
            output_transcription=config.output_transcription,
            tools=tuple(tools),
        )


def build_live_connect_config(settings: LiveSettings) -> dict[str, Any]:
    """
    Translate settings into a Live connect config.

    Raises:
        ValueError if the voice is not a prebuilt voice.
    """
    if settings.voice not in AVAILABLE_VOICES:
        raise ValueError(f"Unknown voice: {settings.voice!r}")

    config: dict[str, Any] = {
        "responseModalities": ["AUDIO"],
        "speechConfig": {
            "voiceConfig": {
                "prebuiltVoiceConfig": {"voiceName": settings.voice},
            },
        },
    }

    if settings.system_prompt:
        config["systemInstruction"] = {"parts": [{"text": settings.system_prompt}]}

    if settings.input_transcription:
        config["inputAudioTranscription"] = {}
    if settings.output_transcription:
        config["outputAudioTranscription"] = {}

    declarations = [tool.to_declaration() for tool in settings.tools if tool.is_enabled]
    if declarations:
        config["tools"] = [{"functionDeclarations": declarations}]

    return config

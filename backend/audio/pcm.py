"""PCM and base64 conversion utilities."""
from __future__ import annotations

import base64
import binascii

import numpy as np


class AudioDecodeError(ValueError):
    """Raised when an inline audio payload is not valid base64."""


def base64_to_bytes(b64: str) -> bytes:
    """Decode a base64 payload into raw bytes (strict alphabet)."""
    try:
        return base64.b64decode(b64, validate=True)
    except (binascii.Error, ValueError) as e:
        raise AudioDecodeError(f"Invalid base64 audio payload: {e}") from e


def bytes_to_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def pcm16le_to_float32(pcm_bytes: bytes) -> np.ndarray:
    """
    Convert PCM16 little-endian mono bytes to float32 in [-1.0, 1.0).

    No resampling. No channel mixing.
    """
    if len(pcm_bytes) % 2 != 0:
        # Truncated trailing sample
        pcm_bytes = pcm_bytes[: len(pcm_bytes) - 1]

    audio_i16 = np.frombuffer(pcm_bytes, dtype="<i2")  # little-endian int16
    audio_f32 = audio_i16.astype(np.float32) / 32768.0
    return audio_f32


def rms_level(pcm_bytes: bytes) -> float:
    """
    Root-mean-square level of a PCM16 buffer, in [0.0, 1.0].

    Empty input is silence (0.0).
    """
    samples = pcm16le_to_float32(pcm_bytes)
    if samples.size == 0:
        return 0.0
    level = float(np.sqrt(np.mean(np.square(samples, dtype=np.float64))))
    return min(level, 1.0)

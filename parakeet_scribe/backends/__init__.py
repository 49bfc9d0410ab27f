"""Speech engine contracts and registry for streaming transcription.

This module provides:
- Backend enum for selecting transcription engines
- STTCapabilities dataclass for capability flags
- ModelInfo dataclass for model metadata
- SpeechEngine protocol for backend implementations
- ParakeetBackend implementation for Parakeet TDT models
- MlxAudioBackend implementation for Whisper via mlx-audio (optional)
"""

from .base import (
    Backend,
    ModelInfo,
    SpeechEngine,
    STTCapabilities,
)
from .parakeet import ParakeetBackend

__all__ = [
    "Backend",
    "MlxAudioBackend",
    "ModelInfo",
    "ParakeetBackend",
    "STTCapabilities",
    "SpeechEngine",
]


def __getattr__(name: str):
    """Lazy import MlxAudioBackend to avoid importing mlx-audio when not needed."""
    if name == "MlxAudioBackend":
        from .mlx_audio import MlxAudioBackend

        return MlxAudioBackend
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

"""Speech engine contracts for streaming transcription."""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    import numpy as np

    from ..types import TranscriptionResult


class Backend(str, Enum):
    """Supported transcription backends."""

    PARAKEET = "parakeet"
    MLX_AUDIO = "mlx-audio"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class STTCapabilities:
    """Capability flags for speech-to-text backends.

    Describes what features a backend/model combination supports.
    """

    supports_word_timestamps: bool = True
    """Whether the model provides word-level timestamps (required for streaming)."""

    supports_clip_timestamps: bool = False
    """Whether the model itself can skip audio before a clip start.

    Backends without it decode a window starting shortly before the clip start.
    """

    supports_language_hint: bool = False
    """Whether the model accepts a language hint for transcription."""


@dataclass
class ModelInfo:
    """Metadata for a curated STT model."""

    model_id: str
    """HuggingFace model identifier (e.g., 'mlx-community/parakeet-tdt-0.6b-v3')."""

    backend: Backend
    """Which transcription backend to use."""

    capabilities: STTCapabilities
    """What features this model supports."""

    description: str = ""
    """Human-readable description for CLI display."""

    aliases: list[str] = field(default_factory=list)
    """Short names for CLI convenience (e.g., ['parakeet', 'v3'])."""


@runtime_checkable
class SpeechEngine(Protocol):
    """Protocol every speech engine backend satisfies."""

    @property
    def model_id(self) -> str:
        """The model identifier being used."""
        ...

    @property
    def capabilities(self) -> STTCapabilities:
        """The capabilities of this engine."""
        ...

    def transcribe(
        self,
        samples: "np.ndarray",
        clip_start: float = 0.0,
    ) -> "TranscriptionResult":
        """Transcribe a mono float32 buffer.

        Args:
            samples: The whole buffer from index 0, at 16 kHz.
            clip_start: Timestamps before this point (seconds) are of no
                interest; the engine may still read earlier audio for context.

        Returns:
            TranscriptionResult whose word times are relative to the buffer start.
        """
        ...

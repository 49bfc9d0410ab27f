"""mlx-audio backend implementation.

This backend uses the mlx-audio library for Whisper models, which decode
the whole buffer but honour ``clip_timestamps`` so that already confirmed
audio is skipped.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

import numpy as np

from ..types import TranscriptionResult, WordTiming
from .base import Backend, STTCapabilities
from .registry import MODEL_REGISTRY

logger = logging.getLogger(__name__)

# Flag to track if mlx-audio is available
_mlx_audio_available: bool | None = None


def _check_mlx_audio_available() -> bool:
    """Check if mlx-audio is installed and available."""
    global _mlx_audio_available
    if _mlx_audio_available is None:
        try:
            import mlx_audio.stt  # noqa: F401

            _mlx_audio_available = True
        except ImportError:
            _mlx_audio_available = False
    return _mlx_audio_available


def is_mlx_audio_available() -> bool:
    """Check if mlx-audio is installed and available."""
    return _check_mlx_audio_available()


def _field(item: Any, name: str, default: Any = None) -> Any:
    """Read ``name`` from an object or a dict."""
    if isinstance(item, dict):
        return item.get(name, default)
    return getattr(item, name, default)


def convert_words(result: Any) -> list[WordTiming]:
    """Flatten Whisper-style ``segments[].words[]`` into WordTimings.

    Segments and words may be objects or dicts depending on the model.
    """
    words: list[WordTiming] = []
    for seg in _field(result, "segments", None) or []:
        for word in _field(seg, "words", None) or []:
            text = _field(word, "word")
            if text is None:
                text = _field(word, "text", "")
            words.append(
                WordTiming(
                    word=text,
                    start=float(_field(word, "start", 0.0)),
                    end=float(_field(word, "end", 0.0)),
                    tokens=tuple(_field(word, "tokens", None) or ()),
                )
            )
    return words


class MlxAudioBackend:
    """Speech engine for Whisper models served by mlx-audio."""

    def __init__(self, model_id: str, language: str | None = None):
        """Initialize the mlx-audio backend.

        Args:
            model_id: HuggingFace model ID (e.g., 'mlx-community/whisper-large-v3-turbo').
            language: Language hint for transcription (e.g., "en", "fr").

        Raises:
            RuntimeError: If mlx-audio is not installed.
        """
        if not _check_mlx_audio_available():
            raise RuntimeError(
                "mlx-audio is required for this backend but not installed. "
                "Install with: pip install 'parakeet-scribe[mlx-audio]'"
            )

        self._model_id = model_id
        self.language = language
        self._model: Any = None
        self._load_lock = threading.Lock()

        model_info = MODEL_REGISTRY.get(model_id)
        if model_info is not None:
            self._capabilities = model_info.capabilities
        else:
            self._capabilities = STTCapabilities(
                supports_word_timestamps=True,
                supports_clip_timestamps=True,
                supports_language_hint=True,
            )

    @property
    def model_id(self) -> str:
        """The model identifier being used."""
        return self._model_id

    @property
    def capabilities(self) -> STTCapabilities:
        """The capabilities of this engine."""
        return self._capabilities

    @property
    def backend(self) -> Backend:
        """The backend type."""
        return Backend.MLX_AUDIO

    def _load_model(self) -> Any:
        """Lazy load the model on first use."""
        with self._load_lock:
            if self._model is None:
                from mlx_audio.stt.utils import load_model

                logger.info("Loading mlx-audio model %s", self._model_id)
                self._model = load_model(self._model_id)
        return self._model

    def _build_generate_kwargs(self, clip_start: float) -> dict[str, Any]:
        """Build keyword arguments for model.generate() based on capabilities."""
        kwargs: dict[str, Any] = {"word_timestamps": True, "temperature": 0.0}
        if self._capabilities.supports_language_hint and self.language:
            kwargs["language"] = self.language
        if self._capabilities.supports_clip_timestamps and clip_start > 0:
            kwargs["clip_timestamps"] = [clip_start]
        return kwargs

    def transcribe(self, samples: np.ndarray, clip_start: float = 0.0) -> TranscriptionResult:
        """Transcribe the whole buffer, skipping audio before ``clip_start``."""
        model = self._load_model()
        kwargs = self._build_generate_kwargs(clip_start)
        result = model.generate(np.asarray(samples, dtype=np.float32), **kwargs)

        words = convert_words(result)
        text = _field(result, "text", None)
        if text is None:
            text = "".join(w.word for w in words)
        return TranscriptionResult(text=text.strip(), words=words, model_id=self._model_id)

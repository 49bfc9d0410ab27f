"""Parakeet TDT backend implementation.

This backend wraps parakeet-mlx for high-accuracy speech-to-text on Apple
Silicon. Parakeet has no notion of a clip start, so each call decodes a
window that begins ``context_duration`` seconds before the clip start and
shifts the resulting timestamps back onto the buffer timeline.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from typing import Any

import numpy as np

from ..config import SAMPLE_RATE
from ..types import TranscriptionResult, WordTiming, join_words
from .base import Backend, STTCapabilities
from .registry import MODEL_REGISTRY

logger = logging.getLogger(__name__)

DEFAULT_PARAKEET_MODEL = "mlx-community/parakeet-tdt-0.6b-v3"

# Shortest window worth handing to the encoder (one mel hop is 10 ms)
MIN_WINDOW_SAMPLES = 1600


def tokens_to_words(tokens: Iterable[Any], offset: float = 0.0) -> list[WordTiming]:
    """Merge subword tokens into words.

    A token whose text starts with whitespace opens a new word; any other
    token (subword piece, punctuation) extends the current one.

    Args:
        tokens: Objects with ``id``, ``text``, ``start`` and ``end`` attributes.
        offset: Seconds added to every timestamp.
    """
    words: list[WordTiming] = []
    text = ""
    start = end = 0.0
    ids: list[int] = []

    for token in tokens:
        if ids and token.text[:1].isspace():
            words.append(WordTiming(text, start + offset, end + offset, tuple(ids)))
            ids = []
        if not ids:
            text, start = "", token.start
        text += token.text
        end = token.end
        ids.append(int(token.id))

    if ids:
        words.append(WordTiming(text, start + offset, end + offset, tuple(ids)))
    return words


class ParakeetBackend:
    """Speech engine backed by Parakeet TDT models."""

    def __init__(
        self,
        model_id: str = DEFAULT_PARAKEET_MODEL,
        context_duration: float = 10.0,
    ):
        """Initialize the Parakeet backend.

        Args:
            model_id: HuggingFace model ID for Parakeet model.
            context_duration: Audio decoded before the clip start for
                acoustic context (seconds).
        """
        if context_duration < 0:
            raise ValueError(f"context_duration must be >= 0, got {context_duration}")
        self._model_id = model_id
        self.context_duration = context_duration
        self._model: Any = None
        self._load_lock = threading.Lock()

        model_info = MODEL_REGISTRY.get(model_id)
        if model_info is not None:
            self._capabilities = model_info.capabilities
        else:
            self._capabilities = STTCapabilities(
                supports_word_timestamps=True,
                supports_clip_timestamps=False,
                supports_language_hint=False,
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
        return Backend.PARAKEET

    def _load_model(self) -> Any:
        """Lazy load the model on first use."""
        with self._load_lock:
            if self._model is None:
                from parakeet_mlx import from_pretrained

                logger.info("Loading Parakeet model %s", self._model_id)
                self._model = from_pretrained(self._model_id)
        return self._model

    def window_start(self, clip_start: float, total_samples: int) -> int:
        """First sample of the decode window for ``clip_start``."""
        start = int(max(0.0, clip_start - self.context_duration) * SAMPLE_RATE)
        return max(0, min(start, total_samples - MIN_WINDOW_SAMPLES))

    def transcribe(self, samples: np.ndarray, clip_start: float = 0.0) -> TranscriptionResult:
        """Transcribe the buffer tail starting shortly before ``clip_start``."""
        samples = np.asarray(samples, dtype=np.float32)
        if len(samples) < MIN_WINDOW_SAMPLES:
            return TranscriptionResult(text="", words=[], model_id=self._model_id)

        import mlx.core as mx
        from parakeet_mlx.audio import get_logmel

        model = self._load_model()
        start = self.window_start(clip_start, len(samples))
        mel = get_logmel(mx.array(samples[start:]), model.preprocessor_config)
        result = model.generate(mel)[0]

        words = tokens_to_words(result.tokens, offset=start / SAMPLE_RATE)
        return TranscriptionResult(
            text=join_words(words).strip(),
            words=words,
            model_id=self._model_id,
        )

"""Transcriber facade selecting a speech engine backend from the model registry."""

from __future__ import annotations

import threading

import numpy as np

from .backends.base import Backend, SpeechEngine, STTCapabilities
from .backends.registry import MODEL_REGISTRY, require_word_timestamps, resolve_model
from .types import TranscriptionResult

# Default model - optimized for Apple Silicon
DEFAULT_MODEL = "mlx-community/parakeet-tdt-0.6b-v3"


class Transcriber:
    """
    Streaming-friendly transcriber.

    Resolves the model ID or alias to a backend and loads the model once,
    on first use. Both reconciliation engines share one instance, so the
    backend is built under a lock and decodes run one at a time.
    """

    def __init__(
        self,
        model_id: str = DEFAULT_MODEL,
        backend: Backend | None = None,
        language: str | None = None,
        context_duration: float = 10.0,
    ):
        """
        Initialize the transcriber.

        Args:
            model_id: HuggingFace model ID or registry alias
            backend: Explicit backend, required for models not in the registry
            language: Language hint for backends that accept one
            context_duration: Parakeet only, audio decoded before the clip start

        Raises:
            ValueError: If the model is unknown without an explicit backend,
                or does not provide word timestamps
        """
        try:
            info = require_word_timestamps(resolve_model(model_id))
            self.model_id = info.model_id
            self.backend = backend or info.backend
        except ValueError:
            if backend is None or model_id in _known_ids():
                raise
            self.model_id = model_id
            self.backend = backend

        self.language = language
        self.context_duration = context_duration
        self._engine: SpeechEngine | None = None
        self._load_lock = threading.Lock()
        # MLX models are not safe to run from two threads at once
        self._decode_lock = threading.Lock()

    def _load_engine(self) -> SpeechEngine:
        """Instantiate the backend on first use."""
        with self._load_lock:
            if self._engine is None:
                if self.backend == Backend.MLX_AUDIO:
                    from .backends.mlx_audio import MlxAudioBackend

                    self._engine = MlxAudioBackend(self.model_id, language=self.language)
                else:
                    from .backends.parakeet import ParakeetBackend

                    self._engine = ParakeetBackend(
                        self.model_id, context_duration=self.context_duration
                    )
        return self._engine

    @property
    def capabilities(self) -> STTCapabilities:
        return self._load_engine().capabilities

    def transcribe(self, samples: np.ndarray, clip_start: float = 0.0) -> TranscriptionResult:
        """
        Transcribe a buffer snapshot.

        Args:
            samples: Mono float32 samples from the start of the recording
            clip_start: Seconds before which new timestamps are not wanted

        Returns:
            TranscriptionResult with word timings relative to the buffer start
        """
        engine = self._load_engine()
        with self._decode_lock:
            return engine.transcribe(samples, clip_start=clip_start)


def _known_ids() -> set[str]:
    return set(MODEL_REGISTRY) | {a for m in MODEL_REGISTRY.values() for a in m.aliases}

"""Curated model registry for streaming STT models.

Provides a registry of known models with their backend assignments
and capability metadata. Used by the CLI for model listing and by
the transcriber for backend selection.
"""

from .base import Backend, ModelInfo, STTCapabilities

MODEL_REGISTRY: dict[str, ModelInfo] = {
    "mlx-community/parakeet-tdt-0.6b-v3": ModelInfo(
        model_id="mlx-community/parakeet-tdt-0.6b-v3",
        backend=Backend.PARAKEET,
        capabilities=STTCapabilities(
            supports_word_timestamps=True,
            supports_clip_timestamps=False,
            supports_language_hint=False,
        ),
        description="Parakeet TDT 0.6B v3 - High accuracy, 25 European languages",
        aliases=["parakeet-v3", "parakeet"],
    ),
    "mlx-community/parakeet-tdt-0.6b-v2": ModelInfo(
        model_id="mlx-community/parakeet-tdt-0.6b-v2",
        backend=Backend.PARAKEET,
        capabilities=STTCapabilities(
            supports_word_timestamps=True,
            supports_clip_timestamps=False,
            supports_language_hint=False,
        ),
        description="Parakeet TDT 0.6B v2 - English only",
        aliases=["parakeet-v2"],
    ),
    "mlx-community/whisper-large-v3-turbo": ModelInfo(
        model_id="mlx-community/whisper-large-v3-turbo",
        backend=Backend.MLX_AUDIO,
        capabilities=STTCapabilities(
            supports_word_timestamps=True,
            supports_clip_timestamps=True,
            supports_language_hint=True,
        ),
        description="Whisper Large v3 Turbo - Fast, 100+ languages",
        aliases=["whisper-turbo", "whisper"],
    ),
    "mlx-community/whisper-small-mlx": ModelInfo(
        model_id="mlx-community/whisper-small-mlx",
        backend=Backend.MLX_AUDIO,
        capabilities=STTCapabilities(
            supports_word_timestamps=True,
            supports_clip_timestamps=True,
            supports_language_hint=True,
        ),
        description="Whisper Small - Light enough for two live streams",
        aliases=["whisper-small"],
    ),
    "mlx-community/Voxtral-Mini-3B-2507-bf16": ModelInfo(
        model_id="mlx-community/Voxtral-Mini-3B-2507-bf16",
        backend=Backend.MLX_AUDIO,
        capabilities=STTCapabilities(
            supports_word_timestamps=False,
            supports_clip_timestamps=False,
            supports_language_hint=True,
        ),
        description="Voxtral Mini 3B - Text only, cannot be used for live reconciliation",
        aliases=["voxtral", "voxtral-mini"],
    ),
}


def get_model_info(model_id: str) -> ModelInfo | None:
    """Get model info by exact model ID."""
    return MODEL_REGISTRY.get(model_id)


def list_models(backend: Backend | None = None) -> list[ModelInfo]:
    """List all curated models, optionally filtered by backend.

    Args:
        backend: Filter to specific backend, or None for all.

    Returns:
        List of ModelInfo for matching models.
    """
    models = list(MODEL_REGISTRY.values())
    if backend is not None:
        models = [m for m in models if m.backend == backend]
    return models


def streaming_models() -> list[ModelInfo]:
    """Models whose word timestamps allow live reconciliation."""
    return [m for m in MODEL_REGISTRY.values() if m.capabilities.supports_word_timestamps]


def resolve_model(model_id: str) -> ModelInfo:
    """Resolve a model ID or alias to ModelInfo.

    Raises:
        ValueError: If model ID is not found in registry.
    """
    if model_id in MODEL_REGISTRY:
        return MODEL_REGISTRY[model_id]

    for info in MODEL_REGISTRY.values():
        if model_id in info.aliases:
            return info

    supported = sorted(MODEL_REGISTRY.keys())
    aliases = sorted(
        alias for info in MODEL_REGISTRY.values() for alias in info.aliases
    )

    raise ValueError(
        f"Unknown model: '{model_id}'. "
        f"Supported models: {supported}. "
        f"Aliases: {aliases}."
    )


def require_word_timestamps(info: ModelInfo) -> ModelInfo:
    """Reject models that cannot feed the reconciliation engine.

    Raises:
        ValueError: If the model does not emit word timestamps.
    """
    if not info.capabilities.supports_word_timestamps:
        supported = [m.model_id for m in streaming_models()]
        raise ValueError(
            f"Model '{info.model_id}' does not provide word timestamps. "
            f"Models usable for live transcription: {', '.join(supported)}"
        )
    return info

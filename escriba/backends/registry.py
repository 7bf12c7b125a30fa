"""Curated model registry for speech models.

Provides a registry of known models with their backend assignments and
capability metadata. Used by the CLI for model listing and by
create_backend() for backend selection.
"""

from ..errors import ConfigurationError
from .base import Backend, ModelInfo, SpeechBackend, STTCapabilities

# Whisper takes a language hint, which matters for Portuguese dialects
DEFAULT_MODEL = "mlx-community/whisper-large-v3-turbo-asr-fp16"

MODEL_REGISTRY: dict[str, ModelInfo] = {
    "mlx-community/whisper-large-v3-turbo-asr-fp16": ModelInfo(
        model_id="mlx-community/whisper-large-v3-turbo-asr-fp16",
        backend=Backend.MLX_AUDIO,
        capabilities=STTCapabilities(
            supports_timestamps=True,
            supports_language_hint=True,
        ),
        description="Whisper Large v3 Turbo - multilingual, honours the language hint",
        aliases=["whisper-turbo", "whisper"],
    ),
    "mlx-community/parakeet-tdt-0.6b-v3": ModelInfo(
        model_id="mlx-community/parakeet-tdt-0.6b-v3",
        backend=Backend.PARAKEET,
        capabilities=STTCapabilities(
            supports_timestamps=True,
            supports_language_hint=False,
        ),
        description="Parakeet TDT 0.6B v3 - 25 European languages, auto-detected",
        aliases=["parakeet-v3", "parakeet"],
    ),
    "mlx-community/Voxtral-Mini-3B-2507-bf16": ModelInfo(
        model_id="mlx-community/Voxtral-Mini-3B-2507-bf16",
        backend=Backend.MLX_AUDIO,
        capabilities=STTCapabilities(
            supports_timestamps=False,
            supports_language_hint=True,
        ),
        description="Voxtral Mini 3B - LLM-based, text only (no phrase timings)",
        aliases=["voxtral", "voxtral-mini"],
    ),
}


def get_model_info(model_id: str) -> ModelInfo | None:
    """Get model info by exact model ID.

    Args:
        model_id: Full HuggingFace model identifier.

    Returns:
        ModelInfo if found, None otherwise.
    """
    return MODEL_REGISTRY.get(model_id)


def list_models(backend: Backend | None = None) -> list[ModelInfo]:
    """List all curated models, optionally filtered by backend."""
    models = list(MODEL_REGISTRY.values())
    if backend is not None:
        models = [m for m in models if m.backend == backend]
    return models


def resolve_model(model_id: str) -> ModelInfo:
    """Resolve a model ID or alias to ModelInfo.

    Args:
        model_id: Full model ID or short alias.

    Returns:
        ModelInfo for the resolved model.

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


def create_backend(model: str = DEFAULT_MODEL, backend: Backend | str | None = None) -> SpeechBackend:
    """Build the backend for a model ID or alias.

    Known models use their registered backend unless one is given explicitly.
    Unknown model IDs need an explicit backend.

    Raises:
        ConfigurationError: If the backend name is invalid, or the model is
            unknown and no backend was given.
    """
    if isinstance(backend, str):
        try:
            backend = Backend(backend)
        except ValueError:
            choices = ", ".join(b.value for b in Backend)
            raise ConfigurationError(f"Invalid backend '{backend}'. Must be one of: {choices}") from None

    try:
        info = resolve_model(model)
        model_id = info.model_id
        backend = backend or info.backend
    except ValueError as e:
        if backend is None:
            raise ConfigurationError(str(e)) from None
        model_id = model

    if backend == Backend.PARAKEET:
        from .parakeet import ParakeetBackend

        return ParakeetBackend(model_id)

    from .mlx_audio import MlxAudioBackend

    return MlxAudioBackend(model_id)

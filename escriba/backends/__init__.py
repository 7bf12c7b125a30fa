"""Speech-recognition backends.

This module provides:
- Backend enum for selecting transcription engines
- STTCapabilities dataclass for capability flags
- ModelInfo dataclass for model metadata
- SpeechBackend protocol for backend implementations
- TranscriptionBackendHandle and SegmentTranscriber for the pipeline
- ParakeetBackend and MlxAudioBackend implementations (imported lazily)
"""

from .base import (
    Backend,
    ModelInfo,
    SpeechBackend,
    STTCapabilities,
)
from .handle import SegmentTranscriber, TranscriptionBackendHandle
from .registry import DEFAULT_MODEL, create_backend, list_models, resolve_model

__all__ = [
    "Backend",
    "DEFAULT_MODEL",
    "MlxAudioBackend",
    "ModelInfo",
    "ParakeetBackend",
    "STTCapabilities",
    "SegmentTranscriber",
    "SpeechBackend",
    "TranscriptionBackendHandle",
    "create_backend",
    "list_models",
    "resolve_model",
]


def __getattr__(name: str):
    """Lazy import the concrete backends so their libraries load only on use."""
    if name == "ParakeetBackend":
        from .parakeet import ParakeetBackend

        return ParakeetBackend
    if name == "MlxAudioBackend":
        from .mlx_audio import MlxAudioBackend

        return MlxAudioBackend
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

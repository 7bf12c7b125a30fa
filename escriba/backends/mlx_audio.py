"""mlx-audio backend implementation.

This backend uses the mlx-audio library for speech-to-text transcription,
supporting Whisper, Voxtral and other models available through mlx-audio.
"""

from __future__ import annotations

import threading
from typing import Any

from ..types import RecognizedSpeech, TimedPhrase
from .base import Backend, STTCapabilities, temporary_wav
from .registry import MODEL_REGISTRY

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
    """Check if mlx-audio is installed and available.

    Returns:
        True if mlx-audio can be imported, False otherwise.
    """
    return _check_mlx_audio_available()


def _field(item: Any, name: str, default: Any = None) -> Any:
    """Read a field from either an object or a dict-style result entry."""
    if isinstance(item, dict):
        return item.get(name, default)
    return getattr(item, name, default)


def convert_result(result: Any) -> RecognizedSpeech:
    """Convert mlx-audio output to RecognizedSpeech.

    Handles the output shapes of different mlx-audio models:
    - Whisper: result.segments, as objects or dicts
    - Parakeet: result.sentences
    - Text-only (Voxtral): result.text without timings
    """
    entries = _field(result, "segments") or _field(result, "sentences") or []

    phrases: list[TimedPhrase] = []
    for entry in entries:
        text = (_field(entry, "text") or "").strip()
        if not text:
            continue
        start = float(_field(entry, "start", 0.0) or 0.0)
        end = float(_field(entry, "end", start) or start)
        phrases.append(
            TimedPhrase(text=text, offset_seconds=start, duration_seconds=max(end - start, 0.0))
        )

    full_text = _field(result, "text")
    if full_text is None:
        full_text = " ".join(p.text for p in phrases)

    return RecognizedSpeech(text=full_text.strip(), phrases=phrases)


class MlxAudioBackend:
    """Backend implementation for mlx-audio models.

    Uses the mlx-audio library for transcription. Passes the language hint
    to models that accept one.
    """

    def __init__(self, model_id: str):
        """Initialize the mlx-audio backend.

        Args:
            model_id: HuggingFace model ID (e.g., 'mlx-community/whisper-large-v3-turbo-asr-fp16').
        """
        self._model_id = model_id
        self._model: Any = None
        self._lock = threading.Lock()

        # Get capabilities from registry or use defaults
        model_info = MODEL_REGISTRY.get(model_id)
        if model_info is not None:
            self._capabilities = model_info.capabilities
        else:
            # Unknown model - assume reasonable defaults
            self._capabilities = STTCapabilities(
                supports_timestamps=True,
                supports_language_hint=True,
            )

    @property
    def model_id(self) -> str:
        """The model identifier being used."""
        return self._model_id

    @property
    def capabilities(self) -> STTCapabilities:
        """The capabilities of this backend."""
        return self._capabilities

    @property
    def backend(self) -> Backend:
        """The backend type."""
        return Backend.MLX_AUDIO

    def is_loaded(self) -> bool:
        return self._model is not None

    def load(self) -> None:
        """Lazy load the model on first use.

        Raises:
            RuntimeError: If mlx-audio is not installed.
        """
        if self._model is not None:
            return
        with self._lock:
            if self._model is not None:
                return
            if not _check_mlx_audio_available():
                raise RuntimeError(
                    "mlx-audio is required for this backend but not installed. "
                    "Install with: pip install 'escriba[mlx-audio]'"
                )
            from mlx_audio.stt.utils import load_model

            self._model = load_model(self._model_id)

    def _build_generate_kwargs(self, language: str | None) -> dict[str, Any]:
        """Build keyword arguments for model.generate() based on capabilities."""
        kwargs: dict[str, Any] = {}
        if self._capabilities.supports_language_hint and language:
            kwargs["language"] = language
        return kwargs

    def transcribe(self, wav: bytes, language: str | None = None) -> RecognizedSpeech:
        """Transcribe one WAV segment.

        Args:
            wav: Standalone WAV bytes.
            language: Language hint (e.g., "pt"), used when the model accepts one.

        Returns:
            RecognizedSpeech with segment-relative phrase timings.
        """
        self.load()
        kwargs = self._build_generate_kwargs(language)
        with temporary_wav(wav) as path:
            result = self._model.generate(str(path), **kwargs)
        return convert_result(result)

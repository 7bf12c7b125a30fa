"""Parakeet TDT backend implementation.

This backend wraps the parakeet-mlx library. Parakeet detects the spoken
language itself, so the language hint is ignored.
"""

import threading
from typing import Any

from ..types import RecognizedSpeech, TimedPhrase
from .base import Backend, STTCapabilities, temporary_wav
from .registry import MODEL_REGISTRY

DEFAULT_PARAKEET_MODEL = "mlx-community/parakeet-tdt-0.6b-v3"


def is_parakeet_available() -> bool:
    """Check if parakeet-mlx is installed and available."""
    try:
        import parakeet_mlx  # noqa: F401
    except ImportError:
        return False
    return True


class ParakeetBackend:
    """Backend implementation for Parakeet TDT models.

    The model is loaded lazily and at most once, even when load() is called
    from several threads.
    """

    def __init__(self, model_id: str = DEFAULT_PARAKEET_MODEL):
        self._model_id = model_id
        self._model: Any = None
        self._lock = threading.Lock()

        model_info = MODEL_REGISTRY.get(model_id)
        if model_info is not None:
            self._capabilities = model_info.capabilities
        else:
            # Unknown Parakeet model - assume the usual capabilities
            self._capabilities = STTCapabilities(
                supports_timestamps=True,
                supports_language_hint=False,
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
        return Backend.PARAKEET

    def is_loaded(self) -> bool:
        return self._model is not None

    def load(self) -> None:
        """Load the model on first use.

        Raises:
            RuntimeError: If parakeet-mlx is not installed.
        """
        if self._model is not None:
            return
        with self._lock:
            if self._model is not None:
                return
            try:
                from parakeet_mlx import from_pretrained
            except ImportError as e:
                raise RuntimeError(
                    "parakeet-mlx is required for this backend but not installed. "
                    "Install with: pip install 'escriba[parakeet]'"
                ) from e
            self._model = from_pretrained(self._model_id)

    def transcribe(self, wav: bytes, language: str | None = None) -> RecognizedSpeech:
        """Transcribe one WAV segment.

        Args:
            wav: Standalone WAV bytes.
            language: Ignored; Parakeet auto-detects the language.

        Returns:
            RecognizedSpeech with one timed phrase per recognised sentence.
        """
        self.load()
        with temporary_wav(wav) as path:
            result = self._model.transcribe(str(path))

        phrases = [
            TimedPhrase(
                text=sent.text.strip(),
                offset_seconds=float(sent.start),
                duration_seconds=float(sent.end - sent.start),
            )
            for sent in result.sentences
            if sent.text.strip()
        ]
        return RecognizedSpeech(text=result.text.strip(), phrases=phrases)

"""Backend capability contracts for speech recognition."""

import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ..types import RecognizedSpeech


class Backend(str, Enum):
    """Supported speech-recognition backends."""

    PARAKEET = "parakeet"
    MLX_AUDIO = "mlx-audio"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class STTCapabilities:
    """Capability flags for speech-to-text backends.

    Describes what features a backend/model combination supports.
    """

    supports_timestamps: bool = True
    """Whether the model provides word/phrase timestamps."""

    supports_language_hint: bool = False
    """Whether the model accepts a language hint for transcription."""


@dataclass
class ModelInfo:
    """Metadata for a curated speech model."""

    model_id: str
    """HuggingFace model identifier (e.g., 'mlx-community/parakeet-tdt-0.6b-v3')."""

    backend: Backend
    """Which backend loads this model."""

    capabilities: STTCapabilities
    """What features this model supports."""

    description: str = ""
    """Human-readable description for CLI display."""

    aliases: list[str] = field(default_factory=list)
    """Short names for CLI convenience (e.g., ['parakeet', 'v3'])."""


@runtime_checkable
class SpeechBackend(Protocol):
    """Protocol every speech-recognition backend satisfies.

    Implementations are blocking and are called from a worker thread, one
    call at a time.
    """

    @property
    def model_id(self) -> str:
        """The model identifier being used."""
        ...

    @property
    def capabilities(self) -> STTCapabilities:
        """The capabilities of this backend."""
        ...

    @property
    def backend(self) -> Backend:
        """The backend type."""
        ...

    def load(self) -> None:
        """Load the model. Repeated calls are no-ops."""
        ...

    def is_loaded(self) -> bool:
        """Whether the model is loaded and ready for inference."""
        ...

    def transcribe(self, wav: bytes, language: str | None = None) -> "RecognizedSpeech":
        """Transcribe one standalone WAV segment.

        Args:
            wav: 16-bit PCM WAV bytes of a single segment.
            language: Optional language hint (ignored without language hint support).

        Returns:
            RecognizedSpeech with phrase offsets relative to the segment start.
        """
        ...


@contextmanager
def temporary_wav(wav: bytes) -> Iterator[Path]:
    """Write segment bytes to a temporary .wav file for path-based libraries."""
    handle = tempfile.NamedTemporaryFile(prefix="escriba-", suffix=".wav", delete=False)
    path = Path(handle.name)
    try:
        with handle:
            handle.write(wav)
        yield path
    finally:
        path.unlink(missing_ok=True)

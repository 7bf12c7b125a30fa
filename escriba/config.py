"""Run configuration for the transcription pipeline."""

import dataclasses
import math
from dataclasses import dataclass

from .errors import ConfigurationError
from .patterns import SUPPORTED_DIALECTS

DEFAULT_DIALECT = "pt-PT"
DEFAULT_LANGUAGE_HINT = "pt"

# Chunking defaults
DEFAULT_SEGMENT_DURATION = 30.0
DEFAULT_OVERLAP = 2.0
DEFAULT_SPLIT_THRESHOLD = 180.0
DEFAULT_SPLIT_THRESHOLD_BYTES = 50 * 1024 * 1024
DEFAULT_SEGMENT_TIMEOUT = 120.0


@dataclass(frozen=True)
class StructureOptions:
    """Switches for the independent structuring passes."""

    enable_punctuation: bool = True
    enable_structure_detection: bool = True
    enable_formatting: bool = True


@dataclass(frozen=True)
class TranscriptionConfig:
    """Options for one orchestrator run.

    Attributes:
        dialect: Locale key selecting the structuring rules (pt-PT, pt-MZ).
        language_hint: Language passed to backends that accept a hint.
        enable_punctuation: Run punctuation restoration.
        enable_structure_detection: Detect headings, lists, quotes and paragraphs.
        enable_formatting: Apply emphasis markup.
        segment_duration_seconds: Length of each audio segment.
        overlap_seconds: Audio shared between consecutive segments.
        split_threshold_seconds: Audio longer than this is split into segments.
        split_threshold_bytes: Source files larger than this are split regardless
            of duration. None disables the size check.
        segment_timeout_seconds: Per-segment backend timeout. None waits forever.
    """

    dialect: str = DEFAULT_DIALECT
    language_hint: str | None = DEFAULT_LANGUAGE_HINT
    enable_punctuation: bool = True
    enable_structure_detection: bool = True
    enable_formatting: bool = True
    segment_duration_seconds: float = DEFAULT_SEGMENT_DURATION
    overlap_seconds: float = DEFAULT_OVERLAP
    split_threshold_seconds: float = DEFAULT_SPLIT_THRESHOLD
    split_threshold_bytes: int | None = DEFAULT_SPLIT_THRESHOLD_BYTES
    segment_timeout_seconds: float | None = DEFAULT_SEGMENT_TIMEOUT

    def validate(self) -> "TranscriptionConfig":
        """Reject invalid option combinations.

        Returns:
            self, so calls can be chained.

        Raises:
            ConfigurationError: If any option is out of range.
        """
        validate_segmenting(self.segment_duration_seconds, self.overlap_seconds)

        if not _is_finite(self.split_threshold_seconds) or self.split_threshold_seconds < 0:
            raise ConfigurationError(
                f"split_threshold_seconds must be >= 0, got {self.split_threshold_seconds}"
            )
        if self.split_threshold_bytes is not None and self.split_threshold_bytes <= 0:
            raise ConfigurationError(
                f"split_threshold_bytes must be > 0, got {self.split_threshold_bytes}"
            )
        if self.segment_timeout_seconds is not None and not self.segment_timeout_seconds > 0:
            raise ConfigurationError(
                f"segment_timeout_seconds must be > 0, got {self.segment_timeout_seconds}"
            )
        if self.dialect not in SUPPORTED_DIALECTS:
            raise ConfigurationError(
                f"Unsupported dialect '{self.dialect}'. Use: {sorted(SUPPORTED_DIALECTS)}"
            )
        return self

    def structure_options(self) -> StructureOptions:
        return StructureOptions(
            enable_punctuation=self.enable_punctuation,
            enable_structure_detection=self.enable_structure_detection,
            enable_formatting=self.enable_formatting,
        )

    def replace(self, **changes) -> "TranscriptionConfig":
        return dataclasses.replace(self, **changes)


def validate_segmenting(segment_duration_seconds: float, overlap_seconds: float) -> None:
    """Check a segment duration / overlap pair.

    Raises:
        ConfigurationError: Unless 0 <= overlap < duration and duration > 0.
    """
    if not _is_finite(segment_duration_seconds) or segment_duration_seconds <= 0:
        raise ConfigurationError(
            f"segment_duration_seconds must be > 0, got {segment_duration_seconds}"
        )
    if not _is_finite(overlap_seconds) or overlap_seconds < 0:
        raise ConfigurationError(f"overlap_seconds must be >= 0, got {overlap_seconds}")
    if overlap_seconds >= segment_duration_seconds:
        raise ConfigurationError(
            f"overlap_seconds ({overlap_seconds}) must be shorter than "
            f"segment_duration_seconds ({segment_duration_seconds})"
        )


def _is_finite(value: float) -> bool:
    return isinstance(value, (int, float)) and math.isfinite(value)

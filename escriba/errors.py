"""Error taxonomy for the transcription pipeline.

Only TotalFailure, CancellationError and ConfigurationError reach callers of
the orchestrator. SegmentTranscriptionError is absorbed at the segment seam and
recorded on the SegmentResult instead.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .types import SegmentResult


class EscribaError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(EscribaError, ValueError):
    """Invalid options, rejected before any processing starts."""


class SegmentTranscriptionError(EscribaError):
    """One segment could not be transcribed (backend error, timeout, empty text)."""

    def __init__(self, segment_index: int, reason: str):
        super().__init__(f"Segment {segment_index + 1}: {reason}")
        self.segment_index = segment_index
        self.reason = reason


class TotalFailure(EscribaError):
    """The run produced no usable text at all."""

    def __init__(self, message: str, failures: list[SegmentResult] | None = None):
        super().__init__(message)
        self.failures = list(failures or [])

    @classmethod
    def from_failures(cls, failures: list[SegmentResult]) -> TotalFailure:
        """Build an aggregated error from every failed segment of a run."""
        details = "; ".join(
            f"segment {r.segment_index + 1}: {r.error_message or 'unknown error'}"
            for r in failures
        )
        count = len(failures)
        return cls(f"All {count} segment(s) failed to transcribe ({details})", failures)


class AudioDecodeError(TotalFailure):
    """The source audio could not be decoded into samples."""


class CancellationError(EscribaError):
    """The run was stopped by the caller. Partial output is discarded."""


class InvalidTransitionError(EscribaError, RuntimeError):
    """The orchestrator attempted a state change that is not in the table."""

"""Pipeline data types.

Contains dataclasses shared between the slicer, the backends, the stitcher,
the structurer and the export formatters.
"""

from dataclasses import dataclass, field

import numpy as np


@dataclass(frozen=True, eq=False)
class DecodedAudio:
    """PCM samples at the source's native rate, shaped (frames, channels)."""

    samples: np.ndarray
    sample_rate: int

    @property
    def frame_count(self) -> int:
        return int(self.samples.shape[0])

    @property
    def channel_count(self) -> int:
        return int(self.samples.shape[1]) if self.samples.ndim > 1 else 1

    @property
    def duration_seconds(self) -> float:
        return self.frame_count / self.sample_rate


@dataclass(frozen=True, eq=False)
class AudioSegment:
    """A time-bounded slice of the source audio, ready for a transcriber."""

    index: int
    start_offset_seconds: float
    duration_seconds: float
    samples: np.ndarray = field(repr=False)
    sample_rate: int
    channel_count: int
    wav: bytes = field(repr=False)  # standalone 16-bit PCM WAV

    @property
    def end_offset_seconds(self) -> float:
        return self.start_offset_seconds + self.duration_seconds


@dataclass(frozen=True)
class TimedPhrase:
    """A word or phrase with timing information."""

    text: str
    offset_seconds: float
    duration_seconds: float

    @property
    def end_seconds(self) -> float:
        return self.offset_seconds + self.duration_seconds


@dataclass(frozen=True)
class RecognizedSpeech:
    """Raw backend output for one segment. Phrase offsets are segment-relative."""

    text: str
    phrases: list[TimedPhrase] = field(default_factory=list)


@dataclass(frozen=True)
class SegmentResult:
    """Outcome of transcribing one AudioSegment."""

    segment_index: int
    text: str = ""
    timed_phrases: list[TimedPhrase] = field(default_factory=list)
    failed: bool = False
    error_message: str | None = None
    start_offset_seconds: float = 0.0
    duration_seconds: float = 0.0

    @classmethod
    def failure(cls, segment: AudioSegment, message: str) -> "SegmentResult":
        return cls(
            segment_index=segment.index,
            failed=True,
            error_message=message,
            start_offset_seconds=segment.start_offset_seconds,
            duration_seconds=segment.duration_seconds,
        )


@dataclass(frozen=True)
class StitchedPiece:
    """Text one segment contributed to the stitched transcript."""

    segment_index: int
    start_offset_seconds: float
    duration_seconds: float
    text: str
    timed_phrases: list[TimedPhrase] = field(default_factory=list)


@dataclass(frozen=True)
class StitchedTranscript:
    """Continuous transcript assembled from ordered segment results."""

    text: str
    word_count: int
    segments_used: int
    segments_failed: int
    pieces: list[StitchedPiece] = field(default_factory=list)
    failures: list[SegmentResult] = field(default_factory=list)

    @property
    def total_segments(self) -> int:
        return self.segments_used + self.segments_failed


@dataclass
class StructureStats:
    """Counts of structural elements detected in a document."""

    paragraphs: int = 0
    headings: int = 0
    lists: int = 0
    quotes: int = 0


@dataclass(frozen=True)
class StructuredDocument:
    """Final output of the structuring passes.

    confidence_score is a heuristic UI quality indicator derived from the
    passes that ran. It is not an accuracy measurement.
    """

    markup_text: str
    structure: StructureStats
    confidence_score: float


@dataclass(frozen=True)
class TranscriptionOutcome:
    """Complete result of one orchestrator run."""

    source: str
    model_id: str
    language_hint: str | None
    dialect: str
    duration_seconds: float
    transcript: StitchedTranscript
    document: StructuredDocument

    @property
    def partial(self) -> bool:
        """True when some, but not all, segments failed."""
        return self.transcript.segments_failed > 0 and self.transcript.segments_used > 0

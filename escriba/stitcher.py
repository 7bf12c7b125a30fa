"""Merge ordered per-segment transcripts into one continuous text."""

import dataclasses
import logging
from collections.abc import Iterable

from .types import SegmentResult, StitchedPiece, StitchedTranscript, TimedPhrase

logger = logging.getLogger(__name__)

# Words compared on each side of a segment boundary
LOOKBACK_WORDS = 3


def count_words(text: str) -> int:
    return len(text.split())


def drop_overlap(previous_words: list[str], words: list[str], window: int = LOOKBACK_WORDS) -> list[str]:
    """Remove leading words that repeat the tail of the previous text.

    Each of the first `window` words is looked up in the last `window`
    previous words. When the word at position j is found, everything up to and
    including j is treated as overlap; the last matching position wins. This is
    a heuristic: homophones or re-recognised forms can make it under- or
    over-trim.
    """
    tail = previous_words[-window:]
    start = 0
    for j, word in enumerate(words[:window]):
        if word in tail:
            start = j + 1
    return words[start:]


def drop_leading_phrases(phrases: list[TimedPhrase], dropped: int) -> list[TimedPhrase]:
    """Remove the first `dropped` words from a run of timed phrases.

    Phrases made only of dropped words go away; a phrase straddling the cut
    keeps its remaining words and its timing.
    """
    kept = []
    for phrase in phrases:
        words = phrase.text.split()
        if dropped >= len(words):
            dropped -= len(words)
            continue
        if dropped:
            phrase = dataclasses.replace(phrase, text=" ".join(words[dropped:]))
            dropped = 0
        kept.append(phrase)
    return kept


class TranscriptStitcher:
    """Incremental stitcher: feed results in segment order, then finish()."""

    def __init__(self, overlap_seconds: float = 0.0):
        self.overlap_seconds = overlap_seconds
        self._words: list[str] = []
        self._pieces: list[StitchedPiece] = []
        self._failures: list[SegmentResult] = []
        self._next_index = 0

    @property
    def text(self) -> str:
        """Text accumulated so far."""
        return " ".join(self._words)

    def add(self, result: SegmentResult) -> StitchedPiece | None:
        """Append one segment result.

        Returns:
            The piece the segment contributed, or None for a failed segment.

        Raises:
            ValueError: If the result is not the next segment index.
        """
        if result.segment_index != self._next_index:
            raise ValueError(
                f"Expected segment {self._next_index}, got {result.segment_index}"
            )
        self._next_index += 1

        if result.failed:
            self._failures.append(result)
            return None

        words = result.text.split()
        phrases = list(result.timed_phrases)
        if self._words and self.overlap_seconds > 0:
            kept = drop_overlap(self._words, words)
            if len(kept) < len(words):
                logger.debug(
                    "Segment %d: dropped %d overlapping word(s)",
                    result.segment_index, len(words) - len(kept),
                )
                phrases = drop_leading_phrases(phrases, len(words) - len(kept))
            words = kept

        self._words.extend(words)
        piece = StitchedPiece(
            segment_index=result.segment_index,
            start_offset_seconds=result.start_offset_seconds,
            duration_seconds=result.duration_seconds,
            text=" ".join(words),
            timed_phrases=phrases,
        )
        self._pieces.append(piece)
        return piece

    def finish(self) -> StitchedTranscript:
        text = self.text
        return StitchedTranscript(
            text=text,
            word_count=count_words(text),
            segments_used=len(self._pieces),
            segments_failed=len(self._failures),
            pieces=list(self._pieces),
            failures=list(self._failures),
        )


def stitch(results: Iterable[SegmentResult], overlap_seconds: float = 0.0) -> StitchedTranscript:
    """
    Merge segment results into a single transcript.

    Args:
        results: One result per segment; indices must form 0..N-1
        overlap_seconds: Overlap used when slicing. With 0, no words are dropped.

    Returns:
        StitchedTranscript with provenance for every used and failed segment

    Raises:
        ValueError: If segment indices are duplicated or not contiguous from 0
    """
    ordered = sorted(results, key=lambda r: r.segment_index)
    indices = [r.segment_index for r in ordered]
    if indices != list(range(len(ordered))):
        raise ValueError(f"Segment indices must be unique and contiguous from 0, got {indices}")

    stitcher = TranscriptStitcher(overlap_seconds)
    for result in ordered:
        stitcher.add(result)
    return stitcher.finish()

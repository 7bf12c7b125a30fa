"""Time-domain audio slicing into overlapping, standalone WAV segments."""

import io
import logging

import numpy as np
import soundfile as sf

from .config import validate_segmenting
from .errors import AudioDecodeError
from .types import AudioSegment, DecodedAudio

logger = logging.getLogger(__name__)


def encode_wav(samples: np.ndarray, sample_rate: int) -> bytes:
    """Encode (frames, channels) samples as a self-contained 16-bit PCM WAV."""
    buffer = io.BytesIO()
    sf.write(buffer, samples, sample_rate, format="WAV", subtype="PCM_16")
    return buffer.getvalue()


def _make_segment(audio: DecodedAudio, index: int, start: int, end: int) -> AudioSegment:
    samples = np.array(audio.samples[start:end], dtype=np.float32, copy=True)
    samples.setflags(write=False)
    return AudioSegment(
        index=index,
        start_offset_seconds=start / audio.sample_rate,
        duration_seconds=(end - start) / audio.sample_rate,
        samples=samples,
        sample_rate=audio.sample_rate,
        channel_count=audio.channel_count,
        wav=encode_wav(samples, audio.sample_rate),
    )


def whole_segment(audio: DecodedAudio) -> AudioSegment:
    """The single segment covering all of audio, used when no split is needed."""
    if audio.frame_count == 0:
        raise AudioDecodeError("Cannot segment empty audio")
    return _make_segment(audio, 0, 0, audio.frame_count)


def slice_audio(
    audio: DecodedAudio,
    segment_duration_seconds: float,
    overlap_seconds: float = 0.0,
) -> list[AudioSegment]:
    """
    Cut audio into fixed-duration segments with optional overlap.

    Segments start every (segment_duration - overlap) seconds until the start
    cursor reaches the end of the buffer. Segments are clipped to the buffer,
    so the trailing ones may be shorter; they are neither dropped nor padded.
    Audio no longer than one segment yields a single whole-input segment.

    Args:
        audio: Decoded source audio
        segment_duration_seconds: Length of each segment
        overlap_seconds: Audio shared by consecutive segments

    Returns:
        Segments in index order, each with its own WAV encoding

    Raises:
        ConfigurationError: If overlap is negative or not shorter than the duration
        AudioDecodeError: If audio holds no samples
    """
    validate_segmenting(segment_duration_seconds, overlap_seconds)
    total = audio.frame_count
    if total == 0:
        raise AudioDecodeError("Cannot segment empty audio")

    segment_samples = max(1, int(round(segment_duration_seconds * audio.sample_rate)))
    step_samples = max(1, int(round((segment_duration_seconds - overlap_seconds) * audio.sample_rate)))

    if total <= segment_samples:
        return [whole_segment(audio)]

    segments: list[AudioSegment] = []
    start = 0
    while start < total:
        end = min(start + segment_samples, total)
        segments.append(_make_segment(audio, len(segments), start, end))
        start += step_samples

    logger.info(
        "Split %.1fs of audio into %d segment(s) of %.1fs with %.1fs overlap",
        audio.duration_seconds, len(segments), segment_duration_seconds, overlap_seconds,
    )
    return segments

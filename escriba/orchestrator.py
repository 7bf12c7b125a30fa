"""Top-level transcription pipeline.

The orchestrator decodes the source, decides whether to split it, sends the
segments through a SegmentTranscriber one at a time, stitches the results and
structures the final text. Every step is driven by an explicit state machine
and reported on a ProgressChannel.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Protocol

from .audio import load_audio
from .config import TranscriptionConfig
from .errors import CancellationError, InvalidTransitionError, TotalFailure
from .progress import ProgressChannel, ProgressEvent, ProgressStatus
from .slicer import slice_audio, whole_segment
from .stitcher import TranscriptStitcher
from .structurer import TextStructurer
from .types import AudioSegment, DecodedAudio, SegmentResult, TranscriptionOutcome

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    """Lifecycle states of one run."""

    IDLE = "idle"
    UPLOADED = "uploaded"
    SPLITTING = "splitting"
    TRANSCRIBING = "transcribing"
    STITCHING = "stitching"
    STRUCTURING = "structuring"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    def __str__(self) -> str:
        return self.value

    @property
    def terminal(self) -> bool:
        return not TRANSITIONS[self]


TRANSITIONS: dict[PipelineState, frozenset[PipelineState]] = {
    PipelineState.IDLE: frozenset({PipelineState.UPLOADED, PipelineState.FAILED}),
    PipelineState.UPLOADED: frozenset({
        PipelineState.SPLITTING, PipelineState.TRANSCRIBING, PipelineState.FAILED,
    }),
    PipelineState.SPLITTING: frozenset({PipelineState.TRANSCRIBING, PipelineState.FAILED}),
    PipelineState.TRANSCRIBING: frozenset({
        PipelineState.STITCHING, PipelineState.FAILED, PipelineState.CANCELLED,
    }),
    PipelineState.STITCHING: frozenset({PipelineState.STRUCTURING, PipelineState.FAILED}),
    PipelineState.STRUCTURING: frozenset({PipelineState.COMPLETED, PipelineState.FAILED}),
    PipelineState.COMPLETED: frozenset(),
    PipelineState.FAILED: frozenset(),
    PipelineState.CANCELLED: frozenset(),
}


@dataclass
class ProcessingSession:
    """Ephemeral state of one run. Never persisted."""

    state: PipelineState = PipelineState.IDLE
    current_segment: int = 0
    total_segments: int = 0
    accumulated_text: str = ""
    progress_percent: float = 0.0
    failures: list[SegmentResult] = field(default_factory=list)
    history: list[PipelineState] = field(default_factory=lambda: [PipelineState.IDLE])

    def transition(self, new_state: PipelineState) -> None:
        """Move to new_state.

        Raises:
            InvalidTransitionError: If the edge is not in TRANSITIONS.
        """
        if new_state not in TRANSITIONS[self.state]:
            raise InvalidTransitionError(f"Cannot move from {self.state} to {new_state}")
        logger.debug("Session %s -> %s", self.state, new_state)
        self.state = new_state
        self.history.append(new_state)

    def advance(self) -> None:
        """Mark one more segment as settled."""
        self.current_segment += 1
        if self.total_segments:
            self.progress_percent = self.current_segment / self.total_segments * 100


class Transcriber(Protocol):
    """What the orchestrator needs from a segment transcriber."""

    @property
    def model_id(self) -> str: ...

    async def ensure_ready(self) -> None: ...

    async def transcribe(
        self,
        segment: AudioSegment,
        language_hint: str | None = None,
        timeout_seconds: float | None = None,
    ) -> SegmentResult: ...


class TranscriptionOrchestrator:
    """Run the full pipeline for one source at a time.

    Args:
        transcriber: SegmentTranscriber bound to a loaded (or loadable) backend.
        config: Run options; defaults to TranscriptionConfig().
        progress: Channel receiving progress events. It is closed when run() ends.
        structurer: TextStructurer to use; built from config.dialect if omitted.
        model_id: Model name recorded on the outcome; defaults to the transcriber's.
    """

    def __init__(
        self,
        transcriber: Transcriber,
        config: TranscriptionConfig | None = None,
        progress: ProgressChannel | None = None,
        structurer: TextStructurer | None = None,
        model_id: str = "",
    ):
        self.transcriber = transcriber
        self.config = config or TranscriptionConfig()
        self.progress = progress or ProgressChannel()
        self._structurer = structurer
        self.model_id = model_id or getattr(transcriber, "model_id", "")
        self.session = ProcessingSession()

    def _publish(self, status: ProgressStatus, percent: float, message: str) -> None:
        self.progress.publish(ProgressEvent(status=status, progress_percent=percent, message=message))

    def needs_split(self, audio: DecodedAudio, size_bytes: int | None = None) -> bool:
        """Whether the source must be cut into segments before transcription."""
        if audio.duration_seconds > self.config.split_threshold_seconds:
            return True
        limit = self.config.split_threshold_bytes
        return size_bytes is not None and limit is not None and size_bytes > limit

    async def run(
        self,
        source: Path | str | DecodedAudio,
        language_hint: str | None = None,
        cancel: asyncio.Event | None = None,
    ) -> TranscriptionOutcome:
        """Transcribe and structure one source.

        Args:
            source: Audio file path or already decoded audio.
            language_hint: Overrides config.language_hint when given.
            cancel: Set to stop the run before the next segment starts.

        Returns:
            TranscriptionOutcome, possibly partial when some segments failed.

        Raises:
            ConfigurationError: If the config is invalid. Nothing is processed.
            TotalFailure: If decoding or model loading failed, or no segment
                produced text.
            CancellationError: If cancel was set during transcription.
        """
        self.session = ProcessingSession()
        try:
            self.config.validate()
            return await self._run(source, language_hint, cancel)
        except CancellationError:
            raise
        except asyncio.CancelledError:
            self._abort("Transcription task was cancelled", cancelled=True)
            raise
        except Exception as e:
            logger.error("Transcription failed: %s", e)
            self._abort(str(e))
            raise
        finally:
            self.progress.close()

    def _abort(self, message: str, cancelled: bool = False) -> None:
        session = self.session
        if session.state.terminal:
            return
        if cancelled and session.state is PipelineState.TRANSCRIBING:
            session.transition(PipelineState.CANCELLED)
        else:
            session.transition(PipelineState.FAILED)
        session.accumulated_text = ""
        self._publish(ProgressStatus.ERROR, session.progress_percent, message)

    async def _run(
        self,
        source: Path | str | DecodedAudio,
        language_hint: str | None,
        cancel: asyncio.Event | None,
    ) -> TranscriptionOutcome:
        session = self.session
        config = self.config
        hint = language_hint if language_hint is not None else config.language_hint

        self._publish(ProgressStatus.LOADING, 0, "Loading audio")
        if isinstance(source, DecodedAudio):
            audio = source
            size_bytes = None
            source_name = "<memory>"
        else:
            path = Path(source)
            audio = await asyncio.to_thread(load_audio, path)
            size_bytes = path.stat().st_size
            source_name = str(path)
        session.transition(PipelineState.UPLOADED)

        if self.needs_split(audio, size_bytes):
            session.transition(PipelineState.SPLITTING)
            self._publish(ProgressStatus.LOADING, 0, "Splitting audio into segments")
            segments = await asyncio.to_thread(
                slice_audio, audio, config.segment_duration_seconds, config.overlap_seconds,
            )
            overlap = config.overlap_seconds
        else:
            segments = [await asyncio.to_thread(whole_segment, audio)]
            overlap = 0.0

        self._publish(ProgressStatus.LOADING, 0, "Loading model")
        try:
            await self.transcriber.ensure_ready()
        except Exception as e:
            raise TotalFailure(f"Could not load model {self.model_id}: {e}") from e

        session.transition(PipelineState.TRANSCRIBING)
        session.total_segments = len(segments)
        stitcher = TranscriptStitcher(overlap)
        self._publish(ProgressStatus.TRANSCRIBING, 0, f"Transcribing {len(segments)} segment(s)")

        for segment in segments:
            if cancel is not None and cancel.is_set():
                session.transition(PipelineState.CANCELLED)
                session.accumulated_text = ""
                self._publish(ProgressStatus.ERROR, session.progress_percent, "Transcription cancelled")
                logger.info("Cancelled after %d of %d segment(s)", session.current_segment, session.total_segments)
                raise CancellationError("Transcription cancelled")

            result = await self.transcriber.transcribe(
                segment, hint, timeout_seconds=config.segment_timeout_seconds,
            )
            stitcher.add(result)
            if result.failed:
                session.failures.append(result)
            else:
                session.accumulated_text = stitcher.text
            session.advance()
            self._publish(
                ProgressStatus.TRANSCRIBING,
                session.progress_percent,
                f"Segment {session.current_segment}/{session.total_segments}"
                + (" failed" if result.failed else " done"),
            )

        session.transition(PipelineState.STITCHING)
        transcript = stitcher.finish()
        if transcript.segments_used == 0:
            raise TotalFailure.from_failures(transcript.failures)

        session.transition(PipelineState.STRUCTURING)
        self._publish(ProgressStatus.STRUCTURING, 100, "Structuring text")
        structurer = self._structurer or TextStructurer(config.dialect)
        document = await asyncio.to_thread(
            structurer.structure, transcript.text, config.structure_options(),
        )

        session.transition(PipelineState.COMPLETED)
        if transcript.segments_failed:
            message = (
                f"Completed with {transcript.segments_failed} of "
                f"{transcript.total_segments} part(s) missing"
            )
            logger.warning("%s: %s", source_name, message)
        else:
            message = "Completed"
        self._publish(ProgressStatus.COMPLETED, 100, message)
        logger.info(
            "Transcribed %s: %d word(s) from %d segment(s)",
            source_name, transcript.word_count, transcript.total_segments,
        )

        return TranscriptionOutcome(
            source=source_name,
            model_id=self.model_id,
            language_hint=hint,
            dialect=config.dialect,
            duration_seconds=audio.duration_seconds,
            transcript=transcript,
            document=document,
        )

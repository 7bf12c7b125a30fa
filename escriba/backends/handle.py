"""Owned backend handle and the per-segment transcriber built on it."""

import asyncio
import logging
import threading

from ..errors import SegmentTranscriptionError
from ..types import AudioSegment, RecognizedSpeech, SegmentResult, TimedPhrase
from .base import SpeechBackend

logger = logging.getLogger(__name__)


def _retrieve_error(task: asyncio.Task) -> None:
    # Marks the error as seen when the caller timed out and never awaited it
    if not task.cancelled() and task.exception() is not None:
        logger.debug("Backend call failed: %s", task.exception())


class TranscriptionBackendHandle:
    """Explicitly owned wrapper around one speech backend.

    The model is initialised once per handle. Concurrent ensure_ready() calls
    coalesce on the same load. Backend calls run in a worker thread, one at a
    time. A call whose caller stopped waiting keeps running until the backend
    returns; settle() waits for it.
    """

    def __init__(self, backend: SpeechBackend):
        self.backend = backend
        self._init_lock: asyncio.Lock | None = None
        self._call_lock = threading.Lock()
        self._in_flight: asyncio.Task | None = None
        self.load_count = 0

    @property
    def model_id(self) -> str:
        return self.backend.model_id

    @property
    def ready(self) -> bool:
        return self.backend.is_loaded()

    @property
    def busy(self) -> bool:
        return self._in_flight is not None and not self._in_flight.done()

    async def ensure_ready(self) -> None:
        """Load the backend model if it is not loaded yet."""
        if self._init_lock is None:
            self._init_lock = asyncio.Lock()
        async with self._init_lock:
            if self.backend.is_loaded():
                return
            logger.info("Loading model %s", self.backend.model_id)
            await asyncio.to_thread(self.backend.load)
            self.load_count += 1

    async def settle(self) -> None:
        """Wait until the previous backend call has returned, whatever its outcome."""
        if self.busy:
            logger.debug("Waiting for an abandoned backend call to return")
            await asyncio.wait({self._in_flight})

    def _transcribe_blocking(self, wav: bytes, language: str | None) -> RecognizedSpeech:
        with self._call_lock:
            return self.backend.transcribe(wav, language)

    async def transcribe(self, wav: bytes, language: str | None = None) -> RecognizedSpeech:
        await self.ensure_ready()
        await self.settle()
        task = asyncio.ensure_future(asyncio.to_thread(self._transcribe_blocking, wav, language))
        task.add_done_callback(_retrieve_error)
        self._in_flight = task
        # Shielded so a timed-out caller leaves the call running and settle() can await it
        return await asyncio.shield(task)


class SegmentTranscriber:
    """Transcribe one AudioSegment at a time through a backend handle.

    Backend errors, timeouts and empty results never propagate: they come
    back as failed SegmentResults.
    """

    def __init__(self, handle: TranscriptionBackendHandle, timeout_seconds: float | None = None):
        self.handle = handle
        self.timeout_seconds = timeout_seconds

    @property
    def model_id(self) -> str:
        return self.handle.model_id

    async def ensure_ready(self) -> None:
        await self.handle.ensure_ready()

    async def transcribe(
        self,
        segment: AudioSegment,
        language_hint: str | None = None,
        timeout_seconds: float | None = None,
    ) -> SegmentResult:
        """Transcribe one segment.

        Args:
            segment: Segment to send to the backend.
            language_hint: Passed to backends that accept one.
            timeout_seconds: Limit for this call; falls back to the
                transcriber's own timeout when None.

        Returns:
            SegmentResult, failed when the backend errored, timed out or
            recognised nothing.
        """
        timeout = timeout_seconds if timeout_seconds is not None else self.timeout_seconds
        try:
            # The clock starts only once the model is loaded and the backend is free
            await self.handle.ensure_ready()
            await self.handle.settle()
            speech = await asyncio.wait_for(
                self.handle.transcribe(segment.wav, language_hint),
                timeout=timeout,
            )
            text = speech.text.strip()
            if not text:
                raise SegmentTranscriptionError(segment.index, "no speech recognized")
        except asyncio.TimeoutError:
            return self._failed(
                segment,
                SegmentTranscriptionError(segment.index, f"timed out after {timeout:g}s"),
            )
        except SegmentTranscriptionError as e:
            return self._failed(segment, e)
        except Exception as e:
            return self._failed(segment, SegmentTranscriptionError(segment.index, str(e) or type(e).__name__))

        offset = segment.start_offset_seconds
        phrases = [
            TimedPhrase(
                text=p.text,
                offset_seconds=p.offset_seconds + offset,
                duration_seconds=p.duration_seconds,
            )
            for p in speech.phrases
        ]
        return SegmentResult(
            segment_index=segment.index,
            text=text,
            timed_phrases=phrases,
            start_offset_seconds=segment.start_offset_seconds,
            duration_seconds=segment.duration_seconds,
        )

    @staticmethod
    def _failed(segment: AudioSegment, error: SegmentTranscriptionError) -> SegmentResult:
        logger.warning("%s", error)
        return SegmentResult.failure(segment, error.reason)

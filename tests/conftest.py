"""Shared fixtures: a scripted in-memory speech backend and synthetic audio."""

import logging
import threading
import time

import numpy as np
import pytest
import soundfile as sf

from escriba.backends.base import Backend, STTCapabilities
from escriba.types import DecodedAudio, RecognizedSpeech, TimedPhrase


class FakeBackend:
    """SpeechBackend that replays scripted replies, one per transcribe() call.

    A reply is either text, a RecognizedSpeech, an exception to raise, or a
    ("sleep", seconds, text) tuple that blocks before answering.
    """

    model_id = "fake/whisper"
    backend = Backend.MLX_AUDIO
    capabilities = STTCapabilities(supports_timestamps=True, supports_language_hint=True)

    def __init__(self, replies=None, load_delay=0.0):
        self.replies = list(replies or [])
        self.load_delay = load_delay
        self.load_calls = 0
        self.languages: list[str | None] = []
        self.wavs: list[bytes] = []
        self._loaded = False
        self._lock = threading.Lock()

    def load(self) -> None:
        with self._lock:
            self.load_calls += 1
            time.sleep(self.load_delay)
            self._loaded = True

    def is_loaded(self) -> bool:
        return self._loaded

    def transcribe(self, wav: bytes, language: str | None = None) -> RecognizedSpeech:
        index = len(self.wavs)
        self.wavs.append(wav)
        self.languages.append(language)
        reply = self.replies[index] if index < len(self.replies) else f"segmento {index}"
        if isinstance(reply, BaseException):
            raise reply
        if isinstance(reply, tuple):
            _, seconds, text = reply
            time.sleep(seconds)
            return RecognizedSpeech(text=text)
        if isinstance(reply, RecognizedSpeech):
            return reply
        return RecognizedSpeech(text=reply, phrases=[TimedPhrase(reply, 0.5, 1.0)] if reply else [])


@pytest.fixture
def make_backend():
    """Build a FakeBackend from a list of scripted replies."""

    def factory(replies=None, load_delay=0.0) -> FakeBackend:
        return FakeBackend(replies, load_delay=load_delay)

    return factory


@pytest.fixture
def make_audio():
    """Build a mono or multichannel ramp signal of the given length."""

    def factory(seconds: float, sample_rate: int = 1000, channels: int = 1) -> DecodedAudio:
        frames = int(round(seconds * sample_rate))
        ramp = (np.arange(frames, dtype=np.float32) % sample_rate) / sample_rate
        samples = np.repeat(ramp.reshape(-1, 1), channels, axis=1)
        return DecodedAudio(samples=samples, sample_rate=sample_rate)

    return factory


@pytest.fixture
def wav_file(tmp_path, make_audio):
    """Write a short WAV file and return its path."""

    def factory(seconds: float = 2.0, name: str = "talk.wav", sample_rate: int = 8000):
        audio = make_audio(seconds, sample_rate=sample_rate)
        path = tmp_path / name
        sf.write(str(path), audio.samples * 0.5, sample_rate, subtype="PCM_16")
        return path

    return factory


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo the CLI's logging setup so caplog sees package records."""
    package_logger = logging.getLogger("escriba")
    yield
    package_logger.handlers.clear()
    package_logger.setLevel(logging.NOTSET)
    package_logger.propagate = True

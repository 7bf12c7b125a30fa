"""Tests for audio.py."""

from pathlib import Path
from unittest.mock import patch

import numpy as np
import pytest
import soundfile as sf

from escriba.audio import discover_audio_files, is_supported_audio, load_audio
from escriba.errors import AudioDecodeError, TotalFailure


class TestDiscovery:
    """Tests for input discovery."""

    def test_supported_extensions(self):
        assert is_supported_audio(Path("a.WAV"))
        assert is_supported_audio(Path("b.m4a"))
        assert is_supported_audio(Path("c.opus"))
        assert not is_supported_audio(Path("notes.txt"))

    def test_directory_scan(self, tmp_path):
        (tmp_path / "b.mp3").touch()
        (tmp_path / "a.wav").touch()
        (tmp_path / "notes.txt").touch()
        nested = tmp_path / "sub"
        nested.mkdir()
        (nested / "c.flac").touch()

        assert discover_audio_files([tmp_path]) == [tmp_path / "a.wav", tmp_path / "b.mp3"]
        assert nested / "c.flac" in discover_audio_files([tmp_path], recursive=True)

    def test_duplicates_removed(self, tmp_path):
        path = tmp_path / "a.wav"
        path.touch()

        assert discover_audio_files([path, tmp_path]) == [path]


class TestLoadAudio:
    """Tests for load_audio function."""

    def test_reads_wav(self, tmp_path):
        path = tmp_path / "stereo.wav"
        samples = np.zeros((16000, 2), dtype=np.float32)
        samples[:, 0] = 0.25
        sf.write(str(path), samples, 16000, subtype="PCM_16")

        audio = load_audio(path)

        assert audio.sample_rate == 16000
        assert audio.channel_count == 2
        assert audio.duration_seconds == pytest.approx(1.0)
        assert audio.samples.dtype == np.float32
        np.testing.assert_allclose(audio.samples[:, 0], 0.25, atol=1e-4)

    def test_missing_file(self, tmp_path):
        with pytest.raises(AudioDecodeError, match="not found"):
            load_audio(tmp_path / "missing.wav")

    def test_decode_error_is_total_failure(self, tmp_path):
        with pytest.raises(TotalFailure):
            load_audio(tmp_path / "missing.wav")

    def test_empty_wav(self, tmp_path):
        path = tmp_path / "empty.wav"
        sf.write(str(path), np.zeros((0, 1), dtype=np.float32), 16000, subtype="PCM_16")

        with pytest.raises(AudioDecodeError, match="no samples"):
            load_audio(path)

    def test_unreadable_file_without_ffmpeg(self, tmp_path):
        path = tmp_path / "voice.m4a"
        path.write_bytes(b"definitely not audio")

        with patch("escriba.audio.check_ffmpeg", return_value=False):
            with pytest.raises(AudioDecodeError, match="ffmpeg"):
                load_audio(path)

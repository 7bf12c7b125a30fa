"""Tests for slicer.py."""

import io

import numpy as np
import pytest
import soundfile as sf

from escriba.errors import AudioDecodeError, ConfigurationError
from escriba.slicer import encode_wav, slice_audio, whole_segment
from escriba.types import DecodedAudio


class TestSliceAudio:
    """Tests for slice_audio function."""

    def test_ten_minutes_in_two_minute_segments(self, make_audio):
        audio = make_audio(600.0)
        segments = slice_audio(audio, 120.0, 0.0)

        assert len(segments) == 5
        assert [s.index for s in segments] == [0, 1, 2, 3, 4]
        assert [s.start_offset_seconds for s in segments] == [0.0, 120.0, 240.0, 360.0, 480.0]
        assert all(s.duration_seconds == pytest.approx(120.0) for s in segments)

    def test_overlap_between_consecutive_segments(self, make_audio):
        audio = make_audio(10.0)
        segments = slice_audio(audio, 4.0, 1.0)

        assert [(s.start_offset_seconds, s.end_offset_seconds) for s in segments] == [
            (0.0, 4.0), (3.0, 7.0), (6.0, 10.0), (9.0, 10.0),
        ]
        for prev, nxt in zip(segments, segments[1:]):
            assert prev.end_offset_seconds - nxt.start_offset_seconds == pytest.approx(1.0)

    def test_slicing_continues_until_cursor_reaches_end(self, make_audio):
        audio = make_audio(58.0, sample_rate=100)
        segments = slice_audio(audio, 30.0, 2.0)

        assert [(s.start_offset_seconds, s.end_offset_seconds) for s in segments] == [
            (0.0, 30.0), (28.0, 58.0), (56.0, 58.0),
        ]
        assert segments[-1].duration_seconds == pytest.approx(2.0)

    def test_segments_cover_whole_buffer(self, make_audio):
        audio = make_audio(9.5)
        segments = slice_audio(audio, 3.0, 0.5)

        assert segments[0].start_offset_seconds == 0.0
        assert segments[-1].end_offset_seconds == pytest.approx(audio.duration_seconds)
        for prev, nxt in zip(segments, segments[1:]):
            assert nxt.start_offset_seconds <= prev.end_offset_seconds

    def test_last_segment_is_shorter_not_padded(self, make_audio):
        audio = make_audio(7.0)
        segments = slice_audio(audio, 3.0, 0.0)

        assert [s.duration_seconds for s in segments] == [3.0, 3.0, 1.0]
        assert segments[-1].samples.shape[0] == 1000

    def test_segment_samples_match_source(self, make_audio):
        audio = make_audio(5.0)
        segments = slice_audio(audio, 2.0, 0.5)

        second = segments[1]
        np.testing.assert_array_equal(second.samples, audio.samples[1500:3500])

    def test_audio_shorter_than_segment_gives_one_segment(self, make_audio):
        audio = make_audio(2.0)
        segments = slice_audio(audio, 30.0, 2.0)

        assert len(segments) == 1
        assert segments[0].duration_seconds == pytest.approx(2.0)

    def test_deterministic(self, make_audio):
        audio = make_audio(8.0)
        first = slice_audio(audio, 3.0, 1.0)
        second = slice_audio(audio, 3.0, 1.0)

        assert [s.wav for s in first] == [s.wav for s in second]
        assert [s.start_offset_seconds for s in first] == [s.start_offset_seconds for s in second]

    def test_keeps_channel_count(self, make_audio):
        audio = make_audio(4.0, channels=2)
        segments = slice_audio(audio, 2.0, 0.0)

        assert all(s.channel_count == 2 for s in segments)
        assert segments[0].samples.shape == (2000, 2)

    def test_segment_samples_are_read_only(self, make_audio):
        segment = slice_audio(make_audio(4.0), 2.0, 0.0)[0]

        assert not segment.samples.flags.writeable
        with pytest.raises(ValueError):
            segment.samples[0, 0] = 1.0

    def test_source_buffer_untouched(self, make_audio):
        audio = make_audio(4.0)
        before = audio.samples.copy()
        slice_audio(audio, 1.5, 0.5)

        np.testing.assert_array_equal(audio.samples, before)


class TestSliceAudioValidation:
    """Invalid segmenting options are rejected before any work."""

    @pytest.mark.parametrize(
        "duration, overlap",
        [(0.0, 0.0), (-5.0, 0.0), (10.0, -1.0), (10.0, 10.0), (10.0, 12.0), (float("nan"), 0.0)],
    )
    def test_invalid_options_raise(self, make_audio, duration, overlap):
        with pytest.raises(ConfigurationError):
            slice_audio(make_audio(5.0), duration, overlap)

    def test_configuration_error_is_value_error(self, make_audio):
        with pytest.raises(ValueError):
            slice_audio(make_audio(5.0), 2.0, 2.0)

    def test_empty_audio_raises(self):
        audio = DecodedAudio(samples=np.zeros((0, 1), dtype=np.float32), sample_rate=1000)
        with pytest.raises(AudioDecodeError):
            slice_audio(audio, 2.0, 0.0)


class TestWavEncoding:
    """Each segment carries a standalone WAV container."""

    def test_segment_wav_decodes_to_segment_samples(self, make_audio):
        segment = slice_audio(make_audio(3.0), 2.0, 0.0)[0]

        data, sample_rate = sf.read(io.BytesIO(segment.wav), dtype="float32", always_2d=True)

        assert sample_rate == 1000
        assert data.shape == segment.samples.shape
        np.testing.assert_allclose(data, segment.samples, atol=1e-4)

    def test_wav_is_16_bit_pcm(self, make_audio):
        wav = encode_wav(make_audio(1.0).samples, 1000)
        info = sf.info(io.BytesIO(wav))

        assert info.format == "WAV"
        assert info.subtype == "PCM_16"
        assert info.frames == 1000

    def test_whole_segment_covers_everything(self, make_audio):
        audio = make_audio(2.5)
        segment = whole_segment(audio)

        assert segment.index == 0
        assert segment.start_offset_seconds == 0.0
        assert segment.duration_seconds == pytest.approx(2.5)
        assert segment.wav[:4] == b"RIFF"

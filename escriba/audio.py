"""Audio file discovery and decoding utilities."""

import json
import logging
import shutil
import subprocess
from pathlib import Path

import numpy as np
import soundfile as sf

from .errors import AudioDecodeError
from .types import DecodedAudio

logger = logging.getLogger(__name__)

# Formats the recorder and upload flows accept; ffmpeg covers what libsndfile can't
SUPPORTED_EXTENSIONS = frozenset({
    ".wav", ".mp3", ".m4a", ".flac", ".ogg", ".webm", ".aac", ".wma", ".opus",
})


def is_supported_audio(path: Path) -> bool:
    """Check if a file has a supported audio extension."""
    return path.suffix.lower() in SUPPORTED_EXTENSIONS


def discover_audio_files(paths: list[Path], recursive: bool = False) -> list[Path]:
    """
    Discover audio files from a list of paths.

    Args:
        paths: List of file or directory paths
        recursive: If True, search directories recursively

    Returns:
        List of audio file paths, sorted alphabetically
    """
    audio_files: list[Path] = []

    for path in paths:
        if path.is_file():
            if is_supported_audio(path):
                audio_files.append(path)
        elif path.is_dir():
            pattern = "**/*" if recursive else "*"
            for file_path in path.glob(pattern):
                if file_path.is_file() and is_supported_audio(file_path):
                    audio_files.append(file_path)

    return sorted(set(audio_files))


def check_ffmpeg() -> bool:
    """Check if ffmpeg is available on the system."""
    return shutil.which("ffmpeg") is not None


def _probe_stream(path: Path) -> tuple[int, int] | None:
    """Return (sample_rate, channels) of the first audio stream via ffprobe."""
    ffprobe = shutil.which("ffprobe")
    if not ffprobe:
        return None

    try:
        result = subprocess.run(
            [
                ffprobe,
                "-v", "quiet",
                "-select_streams", "a:0",
                "-show_entries", "stream=sample_rate,channels",
                "-of", "json",
                str(path),
            ],
            capture_output=True,
            text=True,
            timeout=10,
        )
        if result.returncode == 0 and result.stdout.strip():
            stream = json.loads(result.stdout)["streams"][0]
            return int(stream["sample_rate"]), int(stream["channels"])
    except (subprocess.TimeoutExpired, ValueError, KeyError, IndexError):
        pass

    return None


def _decode_with_ffmpeg(path: Path) -> DecodedAudio:
    """Decode any ffmpeg-readable file to float32 PCM at its native rate."""
    if not check_ffmpeg():
        raise AudioDecodeError(f"Cannot decode {path.name}: format needs ffmpeg, which is not installed")

    stream = _probe_stream(path)
    if stream is None:
        raise AudioDecodeError(f"Cannot decode {path.name}: no audio stream found")
    sample_rate, channels = stream

    result = subprocess.run(
        [
            "ffmpeg",
            "-nostdin",
            "-v", "error",
            "-i", str(path),
            "-vn",
            "-f", "f32le",
            "-acodec", "pcm_f32le",
            "-",
        ],
        capture_output=True,
    )
    if result.returncode != 0:
        stderr = result.stderr.decode("utf-8", errors="replace").strip()
        raise AudioDecodeError(f"Cannot decode {path.name}: {stderr or 'ffmpeg failed'}")

    samples = np.frombuffer(result.stdout, dtype=np.float32)
    usable = len(samples) - len(samples) % channels
    return DecodedAudio(samples=samples[:usable].reshape(-1, channels), sample_rate=sample_rate)


def load_audio(path: Path | str) -> DecodedAudio:
    """
    Decode an audio file into a (frames, channels) float32 buffer.

    libsndfile handles WAV, FLAC, OGG and MP3 directly; anything else goes
    through ffmpeg.

    Raises:
        AudioDecodeError: If the file cannot be read or contains no samples.
    """
    path = Path(path)
    if not path.is_file():
        raise AudioDecodeError(f"Audio file not found: {path}")

    try:
        samples, sample_rate = sf.read(str(path), dtype="float32", always_2d=True)
        audio = DecodedAudio(samples=samples, sample_rate=int(sample_rate))
    except (RuntimeError, sf.SoundFileError) as e:
        logger.debug("libsndfile could not read %s (%s); trying ffmpeg", path.name, e)
        audio = _decode_with_ffmpeg(path)

    if audio.frame_count == 0:
        raise AudioDecodeError(f"Audio file contains no samples: {path}")

    logger.debug(
        "Decoded %s: %.2fs, %d Hz, %d channel(s)",
        path.name, audio.duration_seconds, audio.sample_rate, audio.channel_count,
    )
    return audio

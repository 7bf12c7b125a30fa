"""Chunked speech transcription with deterministic text structuring."""

__version__ = "0.1.0"

"""Chunkscribe — chunked media transcription pipeline."""

__version__ = "0.1.0"

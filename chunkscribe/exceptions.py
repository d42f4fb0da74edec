"""Exception taxonomy for the chunking pipeline.

Every pipeline failure derives from ChunkscribeError. The orchestrator
records the stage that raised it on ``stage`` before re-raising.
"""

from typing import Optional


class ChunkscribeError(Exception):
    """Base exception for all pipeline errors."""

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.stage = stage

    @property
    def kind(self) -> str:
        return type(self).__name__


class ValidationError(ChunkscribeError):
    """Bad chunk duration or missing source, rejected before any work."""


class UnsupportedMediaError(ChunkscribeError):
    """Source is neither audio nor video."""


class ConfigurationError(ChunkscribeError):
    """Cloud mode without an endpoint or a well-formed credential."""


class TranscoderError(ChunkscribeError):
    """The ffmpeg engine could not be started or a command failed."""

    def __init__(self, message: str, stderr: str = "", stage: Optional[str] = None):
        super().__init__(message, stage=stage)
        self.stderr = stderr


class ChunkingFailure(ChunkscribeError):
    """Segmentation produced no chunks."""


class DecodeFailure(ChunkscribeError):
    """Normalizing a chunk to 16 kHz PCM failed."""


class BackendLoadError(ChunkscribeError):
    """A transcription backend could not be initialized."""


class BackendRunError(ChunkscribeError):
    """A transcription backend failed on a chunk."""

"""TranscriptionBackendPort — common load/run contract for transcription strategies."""

from abc import ABC, abstractmethod
from typing import Callable, Optional, Union

import numpy as np

from chunkscribe.domain.models import Chunk, TranscriptResult

# (fraction in [0, 1], optional status message)
ProgressCallback = Callable[[float, Optional[str]], None]

BackendPayload = Union[np.ndarray, Chunk]


class TranscriptionBackendPort(ABC):
    # True when run() expects normalized PCM; False when it takes the raw chunk.
    consumes_pcm: bool = True

    @abstractmethod
    def load(self, progress: Optional[ProgressCallback] = None) -> None:
        """Initialize models. Idempotent: returns at once when already loaded."""

    @abstractmethod
    def run(
        self,
        payload: BackendPayload,
        progress: Optional[ProgressCallback] = None,
        language: Optional[str] = None,
    ) -> TranscriptResult:
        """Transcribe one chunk. Raises BackendRunError."""

    @abstractmethod
    def model_name(self) -> str:
        """Human-readable model name for logs and status."""

    @abstractmethod
    def is_loaded(self) -> bool:
        """Whether load() has completed."""

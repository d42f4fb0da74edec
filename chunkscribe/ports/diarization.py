"""DiarizationPort — abstract interface for frame-level speaker segmentation."""

from abc import ABC, abstractmethod
from typing import Callable, Optional

import numpy as np

from chunkscribe.domain.models import SpeakerSegment


class DiarizationPort(ABC):
    @abstractmethod
    def load(self) -> None:
        """Load the diarization pipeline. Raises BackendLoadError."""

    @abstractmethod
    def diarize(
        self,
        samples: np.ndarray,
        sample_rate: int = 16000,
        progress: Optional[Callable[[float], None]] = None,
    ) -> list[SpeakerSegment]:
        """Label the whole timeline with speakers, NO_SPEAKER where nobody talks."""

    @abstractmethod
    def is_loaded(self) -> bool:
        """Whether the diarization pipeline is loaded and ready."""

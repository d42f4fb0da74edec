"""AudioProcessingPort — abstract interface for segmentation and normalization."""

from abc import ABC, abstractmethod

import numpy as np

from chunkscribe.domain.models import Chunk, JobOptions, MediaKind

# Below this many samples (~62 ms at 16 kHz) a chunk is treated as silent.
MIN_AUDIO_SAMPLES = 1000


def has_audio(samples: np.ndarray) -> bool:
    return samples is not None and len(samples) >= MIN_AUDIO_SAMPLES


class AudioProcessingPort(ABC):
    @abstractmethod
    def load(self) -> None:
        """Load the underlying transcoding engine (once per process)."""

    @abstractmethod
    def split(
        self,
        source: bytes,
        media_kind: MediaKind,
        options: JobOptions,
        base_name: str = "chunk",
    ) -> list[Chunk]:
        """Split media into ordered fixed-duration chunks. Raises ChunkingFailure."""

    @abstractmethod
    def normalize(self, data: bytes) -> np.ndarray:
        """Decode media to mono 16 kHz float32 samples. Raises DecodeFailure."""

"""Monotonic job progress.

The job's [0, 1] range is partitioned into bands per pipeline phase. Each
chunk gets an equal slice of the transcription band, and stage-local
0..1 signals are mapped linearly into their slice before being applied.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

logger = logging.getLogger(__name__)

ProgressListener = Callable[[float, Optional[str]], None]


@dataclass(frozen=True)
class Band:
    """A sub-range of [0, 1] reserved for one phase."""
    start: float
    end: float

    @property
    def width(self) -> float:
        return self.end - self.start

    def at(self, fraction: float) -> float:
        fraction = min(1.0, max(0.0, fraction))
        return self.start + fraction * self.width

    def sub(self, lo: float, hi: float) -> "Band":
        return Band(self.at(lo), self.at(hi))

    def split(self, count: int) -> list["Band"]:
        if count < 1:
            return []
        step = self.width / count
        bands = [Band(self.start + i * step, self.start + (i + 1) * step) for i in range(count)]
        # Pin the last edge so float error cannot leave a gap below the band end.
        bands[-1] = Band(bands[-1].start, self.end)
        return bands


ENGINE_LOAD = Band(0.0, 0.02)
SPLITTING = Band(0.02, 0.35)
TRANSCRIBING = Band(0.35, 0.90)
ASSEMBLING = Band(0.90, 1.0)

# Layout inside one chunk's slice of TRANSCRIBING.
CHUNK_NORMALIZE = (0.0, 0.1)
CHUNK_LOAD = (0.1, 0.3)
CHUNK_RUN = (0.3, 1.0)


class ProgressAggregator:
    """Single monotonic progress value for one job.

    Proposed values below the current one are ignored, so a late or
    duplicate notification never moves the indicator backwards.
    """

    def __init__(self, listener: Optional[ProgressListener] = None):
        self._value = 0.0
        self._message: Optional[str] = None
        self._listener = listener

    @property
    def value(self) -> float:
        return self._value

    @property
    def message(self) -> Optional[str]:
        return self._message

    def update(self, value: float, message: Optional[str] = None) -> bool:
        value = min(1.0, max(0.0, value))
        if value < self._value:
            logger.debug(f"Ignoring progress regression {value:.3f} < {self._value:.3f}")
            if message and message != self._message:
                self._notify(self._value, message)
            return False
        self._notify(value, message)
        return True

    def status(self, message: str) -> None:
        self._notify(self._value, message)

    def reporter(self, band: Band) -> Callable[[float, Optional[str]], None]:
        """Return a callback mapping a stage-local 0..1 fraction into ``band``."""
        def report(fraction: float, message: Optional[str] = None) -> None:
            self.update(band.at(fraction), message)
        return report

    def _notify(self, value: float, message: Optional[str]) -> None:
        self._value = value
        if message:
            self._message = message
        if self._listener:
            self._listener(self._value, message)

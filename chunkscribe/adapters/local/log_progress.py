"""Progress adapters — report via logging, optionally keeping the latest snapshot per job."""

import logging
import threading
from dataclasses import dataclass
from typing import Optional

from chunkscribe.ports.progress import ProgressPort

logger = logging.getLogger(__name__)


class LogProgressAdapter(ProgressPort):
    def report(
        self,
        job_id: str,
        stage: str,
        progress: float = 0.0,
        detail: Optional[str] = None,
    ) -> None:
        msg = f"[{job_id}] {stage} {progress:.0%}"
        if detail:
            msg += f" — {detail}"
        logger.info(msg)


@dataclass
class ProgressSnapshot:
    stage: str
    progress: float
    detail: Optional[str] = None


class MemoryProgressAdapter(LogProgressAdapter):
    """Logs like LogProgressAdapter and remembers the last report of each job."""

    def __init__(self):
        self._snapshots: dict[str, ProgressSnapshot] = {}
        self._lock = threading.Lock()

    def report(
        self,
        job_id: str,
        stage: str,
        progress: float = 0.0,
        detail: Optional[str] = None,
    ) -> None:
        super().report(job_id, stage, progress, detail)
        with self._lock:
            previous = self._snapshots.get(job_id)
            if detail is None and previous is not None:
                detail = previous.detail
            self._snapshots[job_id] = ProgressSnapshot(stage=stage, progress=progress, detail=detail)

    def snapshot(self, job_id: str) -> Optional[ProgressSnapshot]:
        with self._lock:
            return self._snapshots.get(job_id)

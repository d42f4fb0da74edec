"""ThreadJobAdapter — runs jobs on one background thread, one at a time."""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Optional

from chunkscribe.ports.job_queue import JobQueuePort

logger = logging.getLogger(__name__)


class ThreadJobAdapter(JobQueuePort):
    """Executes submitted jobs in order on a single worker thread."""

    def __init__(self):
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="job")
        self._futures: dict[str, Future] = {}
        self._running: set[str] = set()
        self._lock = threading.Lock()

    def submit(self, job_id: str, func: Any, *args, **kwargs) -> str:
        def _run():
            with self._lock:
                self._running.add(job_id)
            try:
                return func(*args, **kwargs)
            except Exception as e:
                logger.error(f"Job {job_id} failed: {e}")
                raise
            finally:
                with self._lock:
                    self._running.discard(job_id)

        with self._lock:
            self._futures[job_id] = self._executor.submit(_run)
        return job_id

    def status(self, job_id: str) -> str:
        with self._lock:
            future = self._futures.get(job_id)
            running = job_id in self._running
        if future is None:
            return "unknown"
        if not future.done():
            return "running" if running else "pending"
        return "failed" if future.exception() is not None else "completed"

    def result(self, job_id: str) -> Optional[Any]:
        with self._lock:
            future = self._futures.get(job_id)
        if future is None or not future.done() or future.exception() is not None:
            return None
        return future.result()

    def wait(self, job_id: str, timeout: Optional[float] = None) -> None:
        with self._lock:
            future = self._futures.get(job_id)
        if future is not None:
            future.exception(timeout=timeout)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)

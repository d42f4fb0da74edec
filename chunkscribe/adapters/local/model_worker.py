"""ModelWorker and WorkerBackend — single-owner thread for a loaded model.

Every call is submitted to a one-thread executor and the caller blocks on
the returned future, so a model is only ever touched by its own thread.
Exceptions raised on the worker thread propagate to the caller unchanged.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Optional, TypeVar

from chunkscribe.domain.models import TranscriptResult
from chunkscribe.exceptions import BackendLoadError, BackendRunError
from chunkscribe.ports.backend import BackendPayload, ProgressCallback, TranscriptionBackendPort

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ModelWorker:
    def __init__(self, name: str):
        self._name = name
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"model-{name}")

    @property
    def name(self) -> str:
        return self._name

    def call(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        future = self._executor.submit(func, *args, **kwargs)
        return future.result()

    def shutdown(self) -> None:
        logger.info(f"Shutting down model worker {self._name}")
        self._executor.shutdown(wait=True)


class WorkerBackend(TranscriptionBackendPort):
    """Base for local model backends.

    load() is idempotent and serialized by a lock; model loading and
    inference both run on the backend's ModelWorker thread.
    """

    label = "LOCAL"

    def __init__(self, worker: Optional[ModelWorker] = None):
        self._worker = worker or ModelWorker(self.label.lower())
        self._load_lock = threading.Lock()
        self._ready = False

    def load(self, progress: Optional[ProgressCallback] = None) -> None:
        with self._load_lock:
            if self._ready:
                return
            _notify(progress, 0.0, f"{self.label}: loading model (first time is slow)...")
            try:
                self._worker.call(self._load_models, progress)
            except BackendLoadError:
                raise
            except Exception as e:
                logger.error(f"{self.label} model load failed: {e}", exc_info=True)
                raise BackendLoadError(f"{self.label}: failed to load model: {e}") from e
            self._ready = True
            _notify(progress, 1.0, f"{self.label}: model loaded")
            logger.info(f"{type(self).__name__} ready: {self.model_name()}")

    def run(
        self,
        payload: BackendPayload,
        progress: Optional[ProgressCallback] = None,
        language: Optional[str] = None,
    ) -> TranscriptResult:
        if not self._ready:
            self.load()
        try:
            return self._worker.call(self._run_model, payload, progress, language)
        except BackendRunError:
            raise
        except Exception as e:
            logger.error(f"{self.label} transcription error: {e}", exc_info=True)
            raise BackendRunError(f"{self.label}: transcription failed: {e}") from e

    def is_loaded(self) -> bool:
        return self._ready

    def _load_models(self, progress: Optional[ProgressCallback]) -> None:
        raise NotImplementedError

    def _run_model(
        self,
        payload: BackendPayload,
        progress: Optional[ProgressCallback],
        language: Optional[str],
    ) -> TranscriptResult:
        raise NotImplementedError


def _notify(progress: Optional[ProgressCallback], fraction: float, message: Optional[str] = None) -> None:
    if progress:
        progress(fraction, message)

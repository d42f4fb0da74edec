"""SherpaFastBackend — local ASR returning plain text, no speaker information."""

import logging
from typing import Optional

import numpy as np

from chunkscribe.adapters.local.model_worker import ModelWorker, WorkerBackend, _notify
from chunkscribe.adapters.sherpa.recognizer import DEFAULT_MODEL_DIR, SherpaRecognizer
from chunkscribe.domain.models import TranscriptResult
from chunkscribe.exceptions import BackendRunError
from chunkscribe.ports.backend import ProgressCallback

logger = logging.getLogger(__name__)


class SherpaFastBackend(WorkerBackend):
    label = "FAST"
    consumes_pcm = True

    def __init__(
        self,
        model_dir: str = DEFAULT_MODEL_DIR,
        device: str = "cuda",
        recognizer: Optional[SherpaRecognizer] = None,
        worker: Optional[ModelWorker] = None,
    ):
        super().__init__(worker)
        self._recognizer = recognizer or SherpaRecognizer(model_dir, provider=device)

    def model_name(self) -> str:
        return f"parakeet-tdt-0.6b-v2-int8 ({self._recognizer.provider})"

    def _load_models(self, progress: Optional[ProgressCallback]) -> None:
        self._recognizer.load()

    def _run_model(
        self,
        payload: np.ndarray,
        progress: Optional[ProgressCallback],
        language: Optional[str],
    ) -> TranscriptResult:
        if not isinstance(payload, np.ndarray):
            raise BackendRunError(f"{self.label}: expected PCM samples, got {type(payload).__name__}")

        _notify(progress, 0.0, f"{self.label}: transcribing...")
        decoded = self._recognizer.decode(payload, progress=lambda f: _notify(progress, f))
        if not decoded.text:
            logger.warning("No speech detected")
        _notify(progress, 1.0, f"{self.label}: done")
        return TranscriptResult(text=decoded.text, raw={"text": decoded.text})

"""SherpaDiarizedBackend — word timestamps plus speaker segments, CPU only.

Runs the sherpa recognizer and the diarization pipeline on the same samples.
Both are pinned to the CPU provider so the backend works on any machine.
"""

import logging
from typing import Optional

import numpy as np

from chunkscribe.adapters.local.model_worker import ModelWorker, WorkerBackend, _notify
from chunkscribe.adapters.sherpa.recognizer import DEFAULT_MODEL_DIR, SAMPLE_RATE, SherpaRecognizer, tokens_to_words
from chunkscribe.domain.models import TranscriptResult
from chunkscribe.exceptions import BackendRunError
from chunkscribe.ports.backend import ProgressCallback
from chunkscribe.ports.diarization import DiarizationPort

logger = logging.getLogger(__name__)

# Share of the run spent in ASR; diarization takes the rest.
ASR_SHARE = 0.6


class SherpaDiarizedBackend(WorkerBackend):
    label = "DIARIZED"
    consumes_pcm = True

    def __init__(
        self,
        diarization: DiarizationPort,
        model_dir: str = DEFAULT_MODEL_DIR,
        recognizer: Optional[SherpaRecognizer] = None,
        worker: Optional[ModelWorker] = None,
    ):
        super().__init__(worker)
        self._recognizer = recognizer or SherpaRecognizer(model_dir, provider="cpu")
        self._diarization = diarization

    def model_name(self) -> str:
        return "parakeet-tdt-0.6b-v2-int8 (cpu) + pyannote"

    def _load_models(self, progress: Optional[ProgressCallback]) -> None:
        if not self._recognizer.is_loaded():
            _notify(progress, 0.05, f"{self.label}: loading speech model...")
            self._recognizer.load()
        if not self._diarization.is_loaded():
            _notify(progress, 0.5, f"{self.label}: loading speaker model...")
            self._diarization.load()

    def _run_model(
        self,
        payload: np.ndarray,
        progress: Optional[ProgressCallback],
        language: Optional[str],
    ) -> TranscriptResult:
        if not isinstance(payload, np.ndarray):
            raise BackendRunError(f"{self.label}: expected PCM samples, got {type(payload).__name__}")

        _notify(progress, 0.0, f"{self.label}: transcribing...")
        decoded = self._recognizer.decode(payload, progress=lambda f: _notify(progress, f * ASR_SHARE))
        words = tokens_to_words(decoded.tokens, decoded.timestamps, decoded.duration)

        _notify(progress, ASR_SHARE, f"{self.label}: diarizing...")
        speakers = self._diarization.diarize(
            payload,
            sample_rate=SAMPLE_RATE,
            progress=lambda f: _notify(progress, ASR_SHARE + f * (1 - ASR_SHARE)),
        )
        _notify(progress, 1.0, f"{self.label}: done")

        raw = {
            "transcript": {
                "text": decoded.text,
                "chunks": [{"text": w.text, "timestamp": [w.start, w.end]} for w in words],
            },
            "segments": [{"label": s.label, "start": s.start, "end": s.end} for s in speakers],
        }
        return TranscriptResult(text=decoded.text, words=words, speakers=speakers, raw=raw)

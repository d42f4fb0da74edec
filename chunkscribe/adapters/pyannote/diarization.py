"""PyannoteDiarizationAdapter — wraps Pyannote 3.1 for speaker diarization on CPU.

Works on in-memory 16 kHz samples. Speaker turns are sorted and the gaps
between them are labelled NO_SPEAKER so the whole chunk timeline is covered.
"""

import os
import logging
from typing import Callable, Optional

import numpy as np

from chunkscribe.domain.models import NO_SPEAKER, SpeakerSegment
from chunkscribe.exceptions import BackendLoadError
from chunkscribe.ports.diarization import DiarizationPort

logger = logging.getLogger(__name__)

DEFAULT_DIARIZATION_MODEL = "pyannote/speaker-diarization-3.1"

# Steps reported by the pyannote speaker-diarization pipeline, in order.
PIPELINE_STEPS = ("segmentation", "speaker_counting", "embeddings", "discrete_diarization")

# Gaps shorter than this are not worth a NO_SPEAKER segment.
MIN_GAP_SECONDS = 0.01


def fill_silence(turns: list[SpeakerSegment], duration: float) -> list[SpeakerSegment]:
    """Return turns sorted by start with NO_SPEAKER segments in every gap."""
    filled: list[SpeakerSegment] = []
    cursor = 0.0
    for turn in sorted(turns, key=lambda t: (t.start, t.end)):
        if turn.start - cursor > MIN_GAP_SECONDS:
            filled.append(SpeakerSegment(label=NO_SPEAKER, start=cursor, end=turn.start))
        filled.append(turn)
        cursor = max(cursor, turn.end)
    if duration - cursor > MIN_GAP_SECONDS:
        filled.append(SpeakerSegment(label=NO_SPEAKER, start=cursor, end=duration))
    return filled


class _StepProgressHook:
    """Pyannote pipeline hook that folds per-step progress into one 0..1 value."""

    def __init__(self, progress: Optional[Callable[[float], None]]):
        self._progress = progress

    def __call__(self, step_name, step_artifact, file=None, total=None, completed=None):
        if not self._progress:
            return
        try:
            index = PIPELINE_STEPS.index(step_name)
        except ValueError:
            return
        within = (completed / total) if total and completed is not None else 1.0
        self._progress((index + within) / len(PIPELINE_STEPS))


class PyannoteDiarizationAdapter(DiarizationPort):
    def __init__(
        self,
        model_id: str = DEFAULT_DIARIZATION_MODEL,
        access_token: Optional[str] = None,
        device: str = "cpu",
    ):
        self._model_id = model_id
        self._access_token = access_token
        self._device = device
        self._pipeline = None

    def load(self) -> None:
        if self._pipeline is not None:
            return

        token = self._access_token or os.environ.get("HF_TOKEN") or os.environ.get("HUGGINGFACE_ACCESS_TOKEN")
        if not token:
            raise BackendLoadError("No HuggingFace token available for the diarization model")

        try:
            import torch
            from pyannote.audio import Pipeline
        except ImportError as e:
            raise BackendLoadError(f"pyannote.audio not installed: {e}") from e

        try:
            pipeline = Pipeline.from_pretrained(self._model_id, use_auth_token=token)
        except Exception as e:
            raise BackendLoadError(f"Failed to init diarization: {e}") from e
        if pipeline is None:
            raise BackendLoadError(f"Diarization model {self._model_id} could not be downloaded")

        pipeline.to(torch.device(self._device))
        self._pipeline = pipeline
        logger.info(f"Diarization pipeline initialized on {self._device}")

    def diarize(
        self,
        samples: np.ndarray,
        sample_rate: int = 16000,
        progress: Optional[Callable[[float], None]] = None,
    ) -> list[SpeakerSegment]:
        if self._pipeline is None:
            raise RuntimeError("Diarization pipeline not loaded")

        import torch

        waveform = torch.from_numpy(np.ascontiguousarray(samples, dtype=np.float32)).unsqueeze(0)
        annotation = self._pipeline(
            {"waveform": waveform, "sample_rate": sample_rate},
            hook=_StepProgressHook(progress),
        )

        turns: list[SpeakerSegment] = []
        speakers: set[str] = set()
        for turn, _, speaker in annotation.itertracks(yield_label=True):
            turns.append(SpeakerSegment(label=str(speaker), start=float(turn.start), end=float(turn.end)))
            speakers.add(str(speaker))

        logger.info(f"Found {len(speakers)} speakers in {len(turns)} turns")
        return fill_silence(turns, len(samples) / sample_rate)

    def is_loaded(self) -> bool:
        return self._pipeline is not None

"""
Test configuration and shared fixtures.

The fake transcoder stands in for ffmpeg: a source is the bytes
``b"DUR:<seconds>"`` and every produced chunk stores its own duration the
same way, so segmentation and normalization can be checked without media.
"""

from __future__ import annotations

import math
import re
from pathlib import Path
from typing import Optional

import numpy as np
import pytest

from chunkscribe.adapters.ffmpeg.audio import FFmpegAudioAdapter
from chunkscribe.adapters.local.artifacts import LocalArtifactStore
from chunkscribe.adapters.local.log_progress import MemoryProgressAdapter
from chunkscribe.config import BackendRegistry
from chunkscribe.domain.models import Mode, TranscriptResult, WordToken, SpeakerSegment
from chunkscribe.exceptions import TranscoderError
from chunkscribe.ports.backend import TranscriptionBackendPort
from chunkscribe.ports.transcoder import TranscoderPort
from chunkscribe.use_cases.transcribe import TranscribeMediaUseCase


def _duration(data: bytes) -> float:
    match = re.match(rb"^[A-Za-z0-9]+:([0-9.]+)$", data)
    if not match:
        raise TranscoderError("Invalid data found when processing input", stderr="invalid input")
    return float(match.group(1))


class FakeTranscoder(TranscoderPort):
    def __init__(self, fail_copy: bool = False, produce_nothing: bool = False):
        self.files: dict[str, bytes] = {}
        self.commands: list[list[str]] = []
        self.loads = 0
        self.fail_copy = fail_copy
        self.produce_nothing = produce_nothing
        self._loaded = False

    def load(self) -> None:
        if not self._loaded:
            self.loads += 1
            self._loaded = True

    def is_loaded(self) -> bool:
        return self._loaded

    def write_file(self, name: str, data: bytes) -> None:
        self.files[name] = data

    def exec(self, args: list[str]) -> None:
        self.commands.append(list(args))
        source = self.files[args[args.index("-i") + 1]]

        if "-f" in args and args[args.index("-f") + 1] == "f32le":
            seconds = _duration(source)
            self.files[args[-1]] = np.zeros(int(seconds * 16000), dtype="<f4").tobytes()
            return

        if self.fail_copy and "copy" in args:
            raise TranscoderError("ffmpeg exited with code 1", stderr="could not copy stream")

        seconds = _duration(source)
        if self.produce_nothing:
            return

        segment = int(args[args.index("-segment_time") + 1])
        pattern = args[-1]
        extension = pattern.rsplit(".", 1)[1]
        for i in range(math.ceil(seconds / segment)):
            length = min(segment, seconds - i * segment)
            self.files[pattern % i] = f"{extension}:{length:g}".encode()

    def list_dir(self) -> list[str]:
        return sorted(self.files)

    def read_file(self, name: str) -> bytes:
        return self.files[name]

    def delete_file(self, name: str) -> None:
        self.files.pop(name, None)


class FakeBackend(TranscriptionBackendPort):
    """Returns a canned result per call and records what it was given."""

    def __init__(self, results: Optional[list[TranscriptResult]] = None, consumes_pcm: bool = True,
                 fail_on_call: Optional[int] = None):
        self.results = results or []
        self.consumes_pcm = consumes_pcm
        self.fail_on_call = fail_on_call
        self.loads = 0
        self.payloads: list = []
        self._ready = False

    def load(self, progress=None) -> None:
        if self._ready:
            return
        self.loads += 1
        if progress:
            progress(0.5, "loading")
            progress(1.0, "loaded")
        self._ready = True

    def run(self, payload, progress=None, language=None) -> TranscriptResult:
        from chunkscribe.exceptions import BackendRunError

        call = len(self.payloads)
        self.payloads.append(payload)
        if self.fail_on_call is not None and call == self.fail_on_call:
            raise BackendRunError("model crashed")
        if progress:
            progress(0.5, "working")
            # duplicate, out-of-order notification
            progress(0.2, "late")
            progress(1.0, "done")
        if call < len(self.results):
            return self.results[call]
        return TranscriptResult(text=f"chunk {call} text", raw={"text": f"chunk {call} text"})

    def model_name(self) -> str:
        return "fake"

    def is_loaded(self) -> bool:
        return self._ready


class RecordingProgress(MemoryProgressAdapter):
    def __init__(self):
        super().__init__()
        self.events: list[tuple[str, str, float, Optional[str]]] = []

    def report(self, job_id, stage, progress=0.0, detail=None):
        super().report(job_id, stage, progress, detail)
        self.events.append((job_id, stage, progress, detail))


@pytest.fixture
def transcoder() -> FakeTranscoder:
    return FakeTranscoder()


@pytest.fixture
def audio_adapter(transcoder: FakeTranscoder) -> FFmpegAudioAdapter:
    return FFmpegAudioAdapter(transcoder)


@pytest.fixture
def artifact_store(tmp_path: Path) -> LocalArtifactStore:
    return LocalArtifactStore(str(tmp_path / "artifacts"))


@pytest.fixture
def progress() -> RecordingProgress:
    return RecordingProgress()


@pytest.fixture
def fast_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def registry(fast_backend: FakeBackend) -> BackendRegistry:
    registry = BackendRegistry(cloud_endpoint="https://proxy.example.com")
    registry.register(Mode.FAST, lambda: fast_backend)
    return registry


@pytest.fixture
def use_case(audio_adapter, registry, artifact_store, progress) -> TranscribeMediaUseCase:
    return TranscribeMediaUseCase(
        audio=audio_adapter,
        backends=registry,
        artifacts=artifact_store,
        progress=progress,
    )


@pytest.fixture
def diarized_result() -> TranscriptResult:
    return TranscriptResult(
        text="Hi there bye",
        words=[
            WordToken("Hi", 0.0, 0.3),
            WordToken(" there", 0.3, 0.6),
            WordToken(" bye", 5.0, 5.4),
        ],
        speakers=[
            SpeakerSegment("A", 0.0, 1.0),
            SpeakerSegment("NO_SPEAKER", 1.0, 4.0),
            SpeakerSegment("B", 4.0, 6.0),
        ],
        raw={"segments": []},
    )

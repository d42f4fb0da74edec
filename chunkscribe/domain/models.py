"""Framework-agnostic domain models for Chunkscribe.

Chunks, backend results and the job record live here; the API layer maps
them to Pydantic DTOs at the boundary (see mappers.py).
"""

import mimetypes
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Optional

from chunkscribe.exceptions import UnsupportedMediaError, ValidationError

# Speaker label the segmentation model uses for frames without speech.
NO_SPEAKER = "NO_SPEAKER"


class MediaKind(str, Enum):
    AUDIO = "audio"
    VIDEO = "video"


class Mode(str, Enum):
    OFF = "off"
    FAST = "fast"
    DIARIZED = "diarized"
    CLOUD = "cloud"


class JobState(str, Enum):
    IDLE = "idle"
    SPLITTING = "splitting"
    NORMALIZING = "normalizing"
    BACKEND_LOADING = "backend_loading"
    TRANSCRIBING = "transcribing"
    MERGING = "merging"
    ASSEMBLING = "assembling"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class QualityProfile:
    """Encoder settings for one quality level."""
    audio_bitrate: str
    video_crf: int
    video_preset: str
    video_audio_bitrate: str


QUALITY_PROFILES = {
    "low": QualityProfile(audio_bitrate="128k", video_crf=28, video_preset="veryfast", video_audio_bitrate="96k"),
    "standard": QualityProfile(audio_bitrate="192k", video_crf=23, video_preset="veryfast", video_audio_bitrate="128k"),
    "high": QualityProfile(audio_bitrate="320k", video_crf=18, video_preset="medium", video_audio_bitrate="192k"),
}


def get_quality_profile(name: str) -> QualityProfile:
    try:
        return QUALITY_PROFILES[name]
    except KeyError:
        raise ValidationError(
            f"Unknown quality profile {name!r}. Valid options: {', '.join(QUALITY_PROFILES)}"
        ) from None


def detect_media_kind(content_type: Optional[str], filename: str = "") -> MediaKind:
    """Classify a source by MIME type, falling back to the file extension."""
    mime = content_type or ""
    if not mime.startswith(("audio/", "video/")):
        mime = mimetypes.guess_type(filename)[0] or ""
    if mime.startswith("audio/"):
        return MediaKind.AUDIO
    if mime.startswith("video/"):
        return MediaKind.VIDEO
    raise UnsupportedMediaError(
        f"Unsupported file type {content_type or filename!r}. Please upload audio or video."
    )


@dataclass(frozen=True)
class JobOptions:
    """Per-job settings, built once and passed to every stage."""
    chunk_seconds: int
    mode: Mode = Mode.OFF
    quality: str = "standard"
    credential: Optional[str] = None
    language: Optional[str] = None


@dataclass(frozen=True)
class Chunk:
    """One contiguous, independently decodable slice of the source."""
    index: int
    data: bytes
    media_kind: MediaKind
    filename: str
    mime_type: str

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class WordToken:
    text: str
    start: float
    end: float


@dataclass
class SpeakerSegment:
    label: str
    start: float
    end: float


@dataclass
class TextSegment:
    """A speaker-attributed segment returned whole by the cloud service."""
    speaker: str
    text: str
    start: Optional[float] = None
    end: Optional[float] = None


@dataclass
class TranscriptResult:
    """Backend output for one chunk. Which fields are set depends on the backend."""
    text: str = ""
    words: list[WordToken] = field(default_factory=list)
    speakers: list[SpeakerSegment] = field(default_factory=list)
    segments: list[TextSegment] = field(default_factory=list)
    raw: dict[str, Any] = field(default_factory=dict)
    skipped: bool = False

    @classmethod
    def empty(cls) -> "TranscriptResult":
        return cls(raw={"text": "", "skipped": True}, skipped=True)


@dataclass
class Job:
    """One pipeline invocation for one source file. Never persisted."""
    filename: str
    data: bytes
    media_kind: MediaKind
    options: JobOptions
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    state: JobState = JobState.IDLE
    chunks: list[Chunk] = field(default_factory=list)
    lines: list[str] = field(default_factory=list)
    results: list[dict[str, Any]] = field(default_factory=list)
    artifacts: list[str] = field(default_factory=list)
    error: Optional[Exception] = None

    @property
    def base_name(self) -> str:
        stem = self.filename.rsplit("/", 1)[-1]
        stem = stem.rsplit(".", 1)[0] if "." in stem else stem
        return stem or "chunk"

    def release_payloads(self) -> None:
        """Drop the source and chunk bytes. Chunks keep their index and filename."""
        self.data = b""
        self.chunks = [replace(c, data=b"") for c in self.chunks]

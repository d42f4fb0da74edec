"""FFmpegAudioAdapter — chunk segmentation and PCM normalization via ffmpeg.

Both operations go through one shared TranscoderPort. The engine works on
fixed file names, so every call holds the adapter lock for its whole
write/exec/read/delete cycle.
"""

import re
import logging
import threading
from dataclasses import dataclass
from typing import Optional

import numpy as np

from chunkscribe.domain.models import Chunk, JobOptions, MediaKind, Mode, get_quality_profile
from chunkscribe.exceptions import ChunkingFailure, DecodeFailure, TranscoderError, ValidationError
from chunkscribe.ports.audio import AudioProcessingPort
from chunkscribe.ports.transcoder import TranscoderPort

logger = logging.getLogger(__name__)

SAMPLE_RATE = 16000

INPUT_NAME = "input_media"
NORMALIZE_INPUT_NAME = "normalize_input"
NORMALIZE_OUTPUT_NAME = "audio16k.f32"
CHUNK_PATTERN = re.compile(r"^chunk_(\d+)\.(mp3|flac|mp4)$")


@dataclass(frozen=True)
class OutputFormat:
    name: str
    extension: str
    mime_type: str
    codec_args: tuple


def select_output_formats(media_kind: MediaKind, mode: Mode, quality: str = "standard") -> list[OutputFormat]:
    """Return the segmentation attempts for a source, in the order to try them."""
    profile = get_quality_profile(quality)

    if media_kind == MediaKind.VIDEO:
        return [
            OutputFormat(
                name="video-copy",
                extension="mp4",
                mime_type="video/mp4",
                codec_args=("-map", "0:v:0", "-map", "0:a?", "-c", "copy"),
            ),
            OutputFormat(
                name="video-reencode",
                extension="mp4",
                mime_type="video/mp4",
                codec_args=(
                    "-c:v", "libx264",
                    "-preset", profile.video_preset,
                    "-crf", str(profile.video_crf),
                    "-c:a", "aac",
                    "-b:a", profile.video_audio_bitrate,
                ),
            ),
        ]

    if mode == Mode.CLOUD:
        # The remote model gets lossless audio.
        return [
            OutputFormat(
                name="audio-flac",
                extension="flac",
                mime_type="audio/flac",
                codec_args=("-vn", "-c:a", "flac"),
            )
        ]

    return [
        OutputFormat(
            name="audio-mp3",
            extension="mp3",
            mime_type="audio/mpeg",
            codec_args=("-vn", "-c:a", "libmp3lame", "-b:a", profile.audio_bitrate),
        )
    ]


def build_segment_command(input_name: str, fmt: OutputFormat, chunk_seconds: int) -> list[str]:
    return [
        "-i", input_name,
        *fmt.codec_args,
        "-f", "segment",
        "-segment_time", str(chunk_seconds),
        "-reset_timestamps", "1",
        f"chunk_%03d.{fmt.extension}",
    ]


def build_normalize_command(input_name: str, output_name: str) -> list[str]:
    return [
        "-i", input_name,
        "-vn",
        "-ac", "1",
        "-ar", str(SAMPLE_RATE),
        "-f", "f32le",
        output_name,
    ]


def chunk_filename(base_name: str, index: int, extension: str) -> str:
    return f"{base_name}_{index:03d}.{extension}"


class FFmpegAudioAdapter(AudioProcessingPort):
    def __init__(self, engine: TranscoderPort):
        self._engine = engine
        self._lock = threading.Lock()

    def load(self) -> None:
        self._engine.load()

    def split(
        self,
        source: bytes,
        media_kind: MediaKind,
        options: JobOptions,
        base_name: str = "chunk",
    ) -> list[Chunk]:
        if options.chunk_seconds < 1:
            raise ValidationError(f"Invalid chunk duration: {options.chunk_seconds}")

        formats = select_output_formats(media_kind, options.mode, options.quality)
        logger.info(
            f"Splitting {len(source) / 1024 / 1024:.1f} MB {media_kind.value} "
            f"every {options.chunk_seconds}s ({options.chunk_seconds / 60:.2f} min)"
        )

        with self._lock:
            self._engine.load()
            self._engine.write_file(INPUT_NAME, source)
            last_error: Optional[TranscoderError] = None
            try:
                for fmt in formats:
                    self._clear_outputs()
                    try:
                        self._engine.exec(build_segment_command(INPUT_NAME, fmt, options.chunk_seconds))
                    except TranscoderError as e:
                        logger.warning(f"Segmentation with {fmt.name} failed: {e}")
                        last_error = e
                        continue

                    names = self._list_outputs()
                    if names:
                        logger.info(f"Created {len(names)} chunks with {fmt.name}")
                        return self._collect(names, fmt, media_kind, base_name)
                    logger.warning(f"Segmentation with {fmt.name} produced no chunks")
            finally:
                self._clear_outputs()
                self._engine.delete_file(INPUT_NAME)

        detail = f": {last_error.stderr.strip()}" if last_error and last_error.stderr else ""
        raise ChunkingFailure(f"No chunks created. FFmpeg output failed{detail}")

    def normalize(self, data: bytes) -> np.ndarray:
        with self._lock:
            self._engine.load()
            self._engine.write_file(NORMALIZE_INPUT_NAME, data)
            try:
                self._engine.exec(build_normalize_command(NORMALIZE_INPUT_NAME, NORMALIZE_OUTPUT_NAME))
                raw = self._engine.read_file(NORMALIZE_OUTPUT_NAME)
            except TranscoderError as e:
                raise DecodeFailure(f"Failed to extract 16 kHz audio: {e.stderr.strip() or e}") from e
            finally:
                self._engine.delete_file(NORMALIZE_INPUT_NAME)
                self._engine.delete_file(NORMALIZE_OUTPUT_NAME)

        usable = len(raw) - len(raw) % 4
        samples = np.frombuffer(raw[:usable], dtype="<f4").astype(np.float32)
        logger.debug(f"Normalized chunk to {len(samples)} samples ({len(samples) / SAMPLE_RATE:.2f}s)")
        return samples

    def _list_outputs(self) -> list[str]:
        names = [n for n in self._engine.list_dir() if CHUNK_PATTERN.match(n)]
        return sorted(names, key=lambda n: int(CHUNK_PATTERN.match(n).group(1)))

    def _clear_outputs(self) -> None:
        for name in self._list_outputs():
            self._engine.delete_file(name)

    def _collect(
        self,
        names: list[str],
        fmt: OutputFormat,
        media_kind: MediaKind,
        base_name: str,
    ) -> list[Chunk]:
        chunks: list[Chunk] = []
        for index, name in enumerate(names):
            data = self._engine.read_file(name)
            self._engine.delete_file(name)
            chunks.append(Chunk(
                index=index,
                data=data,
                media_kind=media_kind,
                filename=chunk_filename(base_name, index, fmt.extension),
                mime_type=fmt.mime_type,
            ))
        return chunks

"""FFmpegEngine — subprocess-backed transcoding engine with a private working directory."""

import os
import shutil
import logging
import tempfile
import subprocess
from typing import Optional

from chunkscribe.exceptions import TranscoderError
from chunkscribe.ports.transcoder import TranscoderPort

logger = logging.getLogger(__name__)

# Keep the end of ffmpeg's stderr, that is where the actual error is printed.
STDERR_TAIL_CHARS = 2000


class FFmpegEngine(TranscoderPort):
    def __init__(self, binary: str = "ffmpeg", work_root: Optional[str] = None):
        self._binary = binary
        self._work_root = work_root
        self._workdir: Optional[str] = None

    @property
    def workdir(self) -> Optional[str]:
        return self._workdir

    def load(self) -> None:
        if self._workdir is not None:
            return

        logger.info(f"Loading FFmpeg ({self._binary})...")
        if shutil.which(self._binary) is None and not os.path.isfile(self._binary):
            raise TranscoderError(f"ffmpeg binary not found: {self._binary}")

        result = subprocess.run([self._binary, "-version"], capture_output=True, text=True)
        if result.returncode != 0:
            raise TranscoderError("ffmpeg -version failed", stderr=result.stderr)

        if self._work_root:
            os.makedirs(self._work_root, exist_ok=True)
        self._workdir = tempfile.mkdtemp(prefix="chunkscribe-ffmpeg-", dir=self._work_root)
        version = result.stdout.splitlines()[0] if result.stdout else "unknown version"
        logger.info(f"FFmpeg loaded: {version} (workdir={self._workdir})")

    def is_loaded(self) -> bool:
        return self._workdir is not None

    def write_file(self, name: str, data: bytes) -> None:
        with open(self._path(name), "wb") as f:
            f.write(data)

    def exec(self, args: list[str]) -> None:
        cmd = [self._binary, "-hide_banner", "-nostdin", "-y", *args]
        logger.debug(f"ffmpeg {' '.join(args)}")
        try:
            result = subprocess.run(cmd, cwd=self._require_workdir(), capture_output=True, text=True)
        except OSError as e:
            raise TranscoderError(f"Failed to start ffmpeg: {e}") from e

        if result.returncode != 0:
            stderr = (result.stderr or "")[-STDERR_TAIL_CHARS:]
            logger.error(f"ffmpeg exited with code {result.returncode}: {stderr}")
            raise TranscoderError(f"ffmpeg exited with code {result.returncode}", stderr=stderr)

    def list_dir(self) -> list[str]:
        return sorted(os.listdir(self._require_workdir()))

    def read_file(self, name: str) -> bytes:
        with open(self._path(name), "rb") as f:
            return f.read()

    def delete_file(self, name: str) -> None:
        try:
            os.unlink(self._path(name))
        except FileNotFoundError:
            pass

    def close(self) -> None:
        if self._workdir is not None:
            shutil.rmtree(self._workdir, ignore_errors=True)
            self._workdir = None

    def _require_workdir(self) -> str:
        if self._workdir is None:
            raise TranscoderError("FFmpeg engine used before load()")
        return self._workdir

    def _path(self, name: str) -> str:
        if os.path.basename(name) != name or name in ("", ".", ".."):
            raise TranscoderError(f"Invalid engine file name: {name!r}")
        return os.path.join(self._require_workdir(), name)

"""LocalArtifactStore — job outputs on disk, plus the transcript document and archive builders."""

import io
import os
import logging
import zipfile
from pathlib import Path

from docx import Document
from docx.shared import Pt

from chunkscribe.ports.artifacts import ArtifactStorePort

logger = logging.getLogger(__name__)

TRANSCRIPT_FONT = "Calibri"
TRANSCRIPT_FONT_SIZE = Pt(11)


def build_transcript_document(lines: list[str]) -> bytes:
    """Word document with one paragraph per transcript line."""
    document = Document()
    style = document.styles["Normal"]
    style.font.name = TRANSCRIPT_FONT
    style.font.size = TRANSCRIPT_FONT_SIZE
    for line in lines:
        document.add_paragraph(line)

    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def build_archive(entries: list[tuple[str, bytes]]) -> bytes:
    """ZIP the (archive path, data) entries in the given order."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name, data in entries:
            zf.writestr(name, data)
    return buffer.getvalue()


class LocalArtifactStore(ArtifactStorePort):
    def __init__(self, root: str):
        self._root = Path(root)
        self._root.mkdir(parents=True, exist_ok=True)

    def save(self, job_id: str, name: str, data: bytes) -> None:
        path = self._path(job_id, name)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.debug(f"[{job_id}] saved {name} ({len(data)} bytes)")

    def load(self, job_id: str, name: str) -> bytes:
        path = self._path(job_id, name)
        if not path.is_file():
            raise FileNotFoundError(f"Artifact {name} not found for job {job_id}")
        return path.read_bytes()

    def list(self, job_id: str) -> list[str]:
        job_dir = self._root / job_id
        if not job_dir.is_dir():
            return []
        return sorted(p.name for p in job_dir.iterdir() if p.is_file())

    def _path(self, job_id: str, name: str) -> Path:
        for part in (job_id, name):
            if not part or os.path.basename(part) != part or part in (".", ".."):
                raise FileNotFoundError(f"Invalid artifact path: {job_id}/{name}")
        return self._root / job_id / name

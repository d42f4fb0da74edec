"""HTTP job API: upload a file, poll progress, download artifacts."""

import logging
import mimetypes
from typing import Optional
from urllib.parse import quote

from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.responses import JSONResponse, Response

from chunkscribe.config import (
    Config, get_config, create_audio_adapter, create_backend_registry, create_infra_adapters,
)
from chunkscribe.domain.models import Job, JobOptions, Mode
from chunkscribe.exceptions import ChunkscribeError, UnsupportedMediaError, ValidationError
from chunkscribe.mappers import error_to_dto, job_to_dto
from chunkscribe.models import HealthResponse, JobCreatedResponse, JobStatusResponse
from chunkscribe.use_cases.transcribe import TranscribeMediaUseCase

logger = logging.getLogger(__name__)

mimetypes.add_type("application/vnd.openxmlformats-officedocument.wordprocessingml.document", ".docx")


def parse_mode(value: Optional[str], default: str) -> Mode:
    value = (value or default).strip().lower()
    try:
        return Mode(value)
    except ValueError:
        valid = ", ".join(m.value for m in Mode)
        raise ValidationError(f"Unknown mode {value!r}. Valid options: {valid}") from None


def parse_chunk_seconds(value: Optional[str], default: int) -> int:
    if value is None or not value.strip():
        return default
    try:
        return int(value.strip())
    except ValueError:
        raise ValidationError(f"Invalid split time: {value!r}") from None


def content_disposition(name: str) -> str:
    """Attachment header that survives non-Latin-1 names (RFC 6266 / 5987)."""
    quoted = quote(name)
    if quoted == name:
        return f'attachment; filename="{name}"'
    fallback = name.encode("ascii", "replace").decode("ascii").replace("?", "_").replace('"', "_")
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quoted}"


def create_app(
    cfg: Optional[Config] = None,
    use_case: Optional[TranscribeMediaUseCase] = None,
    adapters: Optional[dict] = None,
) -> FastAPI:
    cfg = cfg or get_config()
    adapters = adapters or create_infra_adapters(cfg)
    job_queue = adapters["job_queue"]
    progress = adapters["progress"]
    artifacts = adapters["artifacts"]

    if use_case is None:
        use_case = TranscribeMediaUseCase(
            audio=create_audio_adapter(cfg),
            backends=create_backend_registry(cfg),
            artifacts=artifacts,
            progress=progress,
        )

    app = FastAPI(title="Chunkscribe", version="0.1.0")
    jobs: dict[str, Job] = {}
    app.state.jobs = jobs
    app.state.job_queue = job_queue

    def _get_job(job_id: str) -> Job:
        job = jobs.get(job_id)
        if job is None:
            raise HTTPException(status_code=404, detail=f"Job {job_id} not found")
        return job

    @app.get("/health", response_model=HealthResponse)
    def health():
        return HealthResponse(status="ok", config=cfg.as_dict())

    @app.post("/v1/jobs", status_code=202, response_model=JobCreatedResponse)
    async def create_job(
        file: UploadFile = File(...),
        chunk_seconds: Optional[str] = Form(None),
        mode: Optional[str] = Form(None),
        quality: Optional[str] = Form(None),
        api_key: Optional[str] = Form(None),
        language: Optional[str] = Form(None),
    ):
        data = await file.read()
        try:
            options = JobOptions(
                chunk_seconds=parse_chunk_seconds(chunk_seconds, cfg.chunk_seconds),
                mode=parse_mode(mode, cfg.default_mode),
                quality=(quality or cfg.default_quality).lower(),
                credential=(api_key or "").strip() or None,
                language=language or None,
            )
            job = use_case.create_job(file.filename or "", data, file.content_type, options)
        except ChunkscribeError as e:
            status_code = 415 if isinstance(e, UnsupportedMediaError) else 400
            logger.warning(f"Rejected job for {file.filename}: {e}")
            return JSONResponse(status_code=status_code, content=error_to_dto(e).model_dump())

        jobs[job.id] = job
        job_queue.submit(job.id, use_case.execute, job)
        return JobCreatedResponse(job_id=job.id, status=job_queue.status(job.id))

    @app.get("/v1/jobs/{job_id}", response_model=JobStatusResponse)
    def get_job(job_id: str):
        job = _get_job(job_id)
        return job_to_dto(
            job,
            status=job_queue.status(job_id),
            snapshot=progress.snapshot(job_id),
            artifacts=artifacts.list(job_id),
        )

    @app.get("/v1/jobs/{job_id}/artifacts/{name}")
    def get_artifact(job_id: str, name: str):
        _get_job(job_id)
        try:
            data = artifacts.load(job_id, name)
        except FileNotFoundError:
            raise HTTPException(status_code=404, detail=f"Artifact {name} not found")
        media_type = mimetypes.guess_type(name)[0] or "application/octet-stream"
        return Response(
            content=data,
            media_type=media_type,
            headers={"Content-Disposition": content_disposition(name)},
        )

    return app

"""Domain -> DTO mappers.

Converts Job (domain) plus the queue status and latest progress snapshot
into the JobStatusResponse the API returns.
"""

from typing import Optional

from chunkscribe.adapters.local.log_progress import ProgressSnapshot
from chunkscribe.domain.models import Job, JobState
from chunkscribe.exceptions import ChunkscribeError
from chunkscribe.models import ErrorResponse, JobStatusResponse


def error_to_dto(error: Exception) -> ErrorResponse:
    """Surface an error verbatim: message, kind and the stage that raised it."""
    if isinstance(error, ChunkscribeError):
        return ErrorResponse(detail=error.message, kind=error.kind, stage=error.stage)
    return ErrorResponse(detail=str(error), kind=type(error).__name__)


def job_to_dto(
    job: Job,
    status: str,
    snapshot: Optional[ProgressSnapshot] = None,
    artifacts: Optional[list[str]] = None,
) -> JobStatusResponse:
    progress = snapshot.progress if snapshot else 0.0
    if job.state == JobState.DONE:
        progress = 1.0

    dto = JobStatusResponse(
        job_id=job.id,
        status=status,
        state=job.state.value,
        progress=progress,
        message=snapshot.detail if snapshot else None,
        mode=job.options.mode.value,
        chunk_count=len(job.chunks),
        line_count=len(job.lines),
        artifacts=artifacts if artifacts is not None else list(job.artifacts),
    )
    if job.error is not None:
        err = error_to_dto(job.error)
        dto.error = err.detail
        dto.error_kind = err.kind
        dto.error_stage = err.stage
    return dto

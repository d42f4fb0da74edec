from typing import List, Optional, Dict, Any
from pydantic import BaseModel


class JobCreatedResponse(BaseModel):
    """Returned when a job has been accepted"""
    job_id: str
    status: str = "pending"


class JobStatusResponse(BaseModel):
    """Current state of a job, polled by the caller"""
    job_id: str
    status: str
    state: str
    progress: float = 0.0
    message: Optional[str] = None
    mode: Optional[str] = None
    chunk_count: int = 0
    line_count: int = 0
    error: Optional[str] = None
    error_kind: Optional[str] = None
    error_stage: Optional[str] = None
    artifacts: List[str] = []


class ErrorResponse(BaseModel):
    detail: str
    kind: str
    stage: Optional[str] = None


class HealthResponse(BaseModel):
    status: str = "ok"
    config: Dict[str, Any] = {}

"""JobQueuePort — abstract interface for job submission and tracking."""

from abc import ABC, abstractmethod
from typing import Any, Optional


class JobQueuePort(ABC):
    @abstractmethod
    def submit(self, job_id: str, func: Any, *args, **kwargs) -> str:
        """Schedule a callable under ``job_id``. Returns the job ID."""

    @abstractmethod
    def status(self, job_id: str) -> str:
        """Return job status: 'pending', 'running', 'completed', 'failed', 'unknown'."""

    @abstractmethod
    def result(self, job_id: str) -> Optional[Any]:
        """Return job result if completed, None otherwise."""

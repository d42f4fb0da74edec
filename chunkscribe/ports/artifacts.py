"""ArtifactStorePort — abstract interface for downloadable job outputs."""

from abc import ABC, abstractmethod


class ArtifactStorePort(ABC):
    @abstractmethod
    def save(self, job_id: str, name: str, data: bytes) -> None:
        """Store one artifact for a job, replacing any previous one with that name."""

    @abstractmethod
    def load(self, job_id: str, name: str) -> bytes:
        """Return an artifact. Raises FileNotFoundError when absent."""

    @abstractmethod
    def list(self, job_id: str) -> list[str]:
        """Names of all artifacts stored for a job."""

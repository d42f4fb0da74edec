"""TranscoderPort — abstract interface for the external transcoding engine.

The engine owns a private working area. Callers write inputs into it by
name, run one command line, then list, read and delete the outputs.
"""

from abc import ABC, abstractmethod


class TranscoderPort(ABC):
    @abstractmethod
    def load(self) -> None:
        """Prepare the engine. Idempotent."""

    @abstractmethod
    def is_loaded(self) -> bool:
        """Whether load() has completed."""

    @abstractmethod
    def write_file(self, name: str, data: bytes) -> None:
        """Store ``data`` in the working area under ``name``."""

    @abstractmethod
    def exec(self, args: list[str]) -> None:
        """Run one command (arguments without the binary). Raises TranscoderError."""

    @abstractmethod
    def list_dir(self) -> list[str]:
        """Names currently present in the working area."""

    @abstractmethod
    def read_file(self, name: str) -> bytes:
        """Return the bytes stored under ``name``."""

    @abstractmethod
    def delete_file(self, name: str) -> None:
        """Remove ``name`` from the working area. Missing names are ignored."""

"""Tests for chunkscribe.config module."""

from __future__ import annotations

import pytest

from chunkscribe.adapters.cloud.transcription import CloudTranscriptionBackend
from chunkscribe.config import BackendRegistry, create_backend_registry, get_config
from chunkscribe.domain.models import JobOptions, Mode
from chunkscribe.exceptions import ConfigurationError

from conftest import FakeBackend


class TestConfig:
    def test_singleton(self) -> None:
        assert get_config() is get_config()

    def test_as_dict_hides_secrets(self) -> None:
        data = get_config().as_dict()

        assert "has_hf_token" in data
        assert "hf_token" not in data
        assert data["chunk_seconds"] >= 1


class TestBackendRegistry:
    def test_off_has_no_backend(self) -> None:
        assert BackendRegistry().get(JobOptions(chunk_seconds=30)) is None

    def test_local_backend_is_shared(self) -> None:
        created = []
        registry = BackendRegistry()
        registry.register(Mode.FAST, lambda: created.append(1) or FakeBackend())

        first = registry.get(JobOptions(chunk_seconds=30, mode=Mode.FAST))
        second = registry.get(JobOptions(chunk_seconds=60, mode=Mode.FAST))

        assert first is second
        assert created == [1]

    def test_cloud_backend_per_job(self) -> None:
        registry = BackendRegistry(cloud_endpoint="https://proxy.example.com")
        options = JobOptions(chunk_seconds=30, mode=Mode.CLOUD, credential="sk-a")

        first = registry.get(options)
        second = registry.get(options)

        assert isinstance(first, CloudTranscriptionBackend)
        assert first is not second

    def test_cloud_validation(self) -> None:
        registry = BackendRegistry(cloud_endpoint="https://YOUR-WORKER.example.workers.dev")

        with pytest.raises(ConfigurationError):
            registry.validate(JobOptions(chunk_seconds=30, mode=Mode.CLOUD, credential="sk-a"))

    def test_default_registry_is_lazy(self) -> None:
        registry = create_backend_registry(get_config())

        registry.validate(JobOptions(chunk_seconds=30, mode=Mode.FAST))
        registry.validate(JobOptions(chunk_seconds=30, mode=Mode.DIARIZED))

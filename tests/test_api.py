"""Tests for the HTTP job API."""

from __future__ import annotations

import io
import zipfile

import pytest
from docx import Document
from fastapi.testclient import TestClient

from chunkscribe.adapters.local.thread_job import ThreadJobAdapter
from chunkscribe.api import content_disposition, create_app
from chunkscribe.config import get_config

from conftest import FakeBackend

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


@pytest.fixture
def job_queue():
    queue = ThreadJobAdapter()
    yield queue
    queue.shutdown()


@pytest.fixture
def client(use_case, progress, artifact_store, job_queue) -> TestClient:
    app = create_app(
        cfg=get_config(),
        use_case=use_case,
        adapters={"job_queue": job_queue, "progress": progress, "artifacts": artifact_store},
    )
    return TestClient(app)


def _submit(client: TestClient, source: bytes = b"DUR:95", filename: str = "talk.mp3",
            content_type: str = "audio/mpeg", **form):
    form.setdefault("chunk_seconds", "30")
    return client.post("/v1/jobs", files={"file": (filename, source, content_type)}, data=form)


class TestHealth:
    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestContentDisposition:
    def test_ascii_name(self) -> None:
        assert content_disposition("output.zip") == 'attachment; filename="output.zip"'

    def test_non_latin_name(self) -> None:
        header = content_disposition("会议_000.mp3")

        header.encode("latin-1")
        assert header == "attachment; filename=\"___000.mp3\"; filename*=UTF-8''%E4%BC%9A%E8%AE%AE_000.mp3"


class TestJobs:
    def test_full_job(self, client: TestClient, job_queue: ThreadJobAdapter) -> None:
        response = _submit(client, mode="fast")
        assert response.status_code == 202
        job_id = response.json()["job_id"]

        job_queue.wait(job_id, timeout=10)
        status = client.get(f"/v1/jobs/{job_id}").json()

        assert status["status"] == "completed"
        assert status["state"] == "done"
        assert status["progress"] == 1.0
        assert status["mode"] == "fast"
        assert status["chunk_count"] == 4
        assert status["line_count"] == 4
        assert "transcript.docx" in status["artifacts"]
        assert status["error"] is None

        transcript = client.get(f"/v1/jobs/{job_id}/artifacts/transcript.docx")
        assert transcript.status_code == 200
        assert transcript.headers["content-type"] == DOCX_MEDIA_TYPE
        document = Document(io.BytesIO(transcript.content))
        assert document.paragraphs[0].text == "chunk 0 text"

        archive = client.get(f"/v1/jobs/{job_id}/artifacts/output.zip")
        with zipfile.ZipFile(io.BytesIO(archive.content)) as zf:
            assert "chunks/talk_003.mp3" in zf.namelist()

    def test_failed_job_reports_error(self, client: TestClient, job_queue: ThreadJobAdapter,
                                      fast_backend: FakeBackend) -> None:
        fast_backend.fail_on_call = 0
        job_id = _submit(client, mode="fast").json()["job_id"]

        job_queue.wait(job_id, timeout=10)
        status = client.get(f"/v1/jobs/{job_id}").json()

        assert status["status"] == "failed"
        assert status["state"] == "failed"
        assert status["error"] == "model crashed"
        assert status["error_kind"] == "BackendRunError"
        assert status["error_stage"] == "transcribing"
        assert "talk_000.mp3" in status["artifacts"]
        assert "output.zip" not in status["artifacts"]

    def test_unsupported_media(self, client: TestClient) -> None:
        response = _submit(client, filename="notes.txt", content_type="text/plain")

        assert response.status_code == 415
        assert response.json()["kind"] == "UnsupportedMediaError"

    def test_invalid_split_time(self, client: TestClient) -> None:
        response = _submit(client, chunk_seconds="0")

        assert response.status_code == 400
        assert response.json()["kind"] == "ValidationError"

    def test_cloud_credential_rejected(self, client: TestClient) -> None:
        response = _submit(client, mode="cloud", api_key="not-a-key")

        assert response.status_code == 400
        assert response.json()["kind"] == "ConfigurationError"

    def test_unknown_mode(self, client: TestClient) -> None:
        response = _submit(client, mode="turbo")

        assert response.status_code == 400
        assert response.json()["kind"] == "ValidationError"
        assert "turbo" in response.json()["detail"]

    @pytest.mark.parametrize("seconds", ["abc", "1.5"])
    def test_non_integer_split_time(self, client: TestClient, seconds: str) -> None:
        response = _submit(client, chunk_seconds=seconds)

        assert response.status_code == 400
        assert response.json()["kind"] == "ValidationError"

    def test_non_ascii_filename_download(self, client: TestClient, job_queue: ThreadJobAdapter) -> None:
        job_id = _submit(client, filename="会议.mp3", mode="off").json()["job_id"]
        job_queue.wait(job_id, timeout=10)

        response = client.get(f"/v1/jobs/{job_id}/artifacts/会议_000.mp3")

        assert response.status_code == 200
        assert response.content == b"mp3:30"
        assert "filename*=UTF-8''%E4%BC%9A%E8%AE%AE_000.mp3" in response.headers["content-disposition"]

    def test_finished_job_drops_payloads(self, client: TestClient, job_queue: ThreadJobAdapter) -> None:
        job_id = _submit(client, mode="fast").json()["job_id"]
        job_queue.wait(job_id, timeout=10)

        job = client.app.state.jobs[job_id]
        assert job.data == b""
        assert all(c.size == 0 for c in job.chunks)
        assert client.get(f"/v1/jobs/{job_id}").json()["chunk_count"] == 4
        assert client.get(f"/v1/jobs/{job_id}/artifacts/talk_000.mp3").content == b"mp3:30"

    def test_missing_job(self, client: TestClient) -> None:
        assert client.get("/v1/jobs/nope").status_code == 404
        assert client.get("/v1/jobs/nope/artifacts/output.zip").status_code == 404

    def test_missing_artifact(self, client: TestClient, job_queue: ThreadJobAdapter) -> None:
        job_id = _submit(client, mode="off").json()["job_id"]
        job_queue.wait(job_id, timeout=10)

        assert client.get(f"/v1/jobs/{job_id}/artifacts/transcript.docx").status_code == 404

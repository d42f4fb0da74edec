"""CloudTranscriptionBackend — uploads raw chunk bytes to a remote transcription proxy.

The service takes one file per request (POST {endpoint}/transcribe) and
answers either with a flat ``text`` field or with a ``segments`` array of
speaker-attributed text.
"""

import logging
from typing import Any, Optional

import requests
from requests.exceptions import RequestException

from chunkscribe.domain.models import Chunk, TextSegment, TranscriptResult
from chunkscribe.exceptions import BackendRunError, ConfigurationError
from chunkscribe.ports.backend import BackendPayload, ProgressCallback, TranscriptionBackendPort

logger = logging.getLogger(__name__)

CREDENTIAL_PREFIX = "sk-"
PLACEHOLDER_MARKER = "YOUR-WORKER"
CLOUD_TIMEOUT_SECONDS = 300


def check_endpoint(endpoint: Optional[str]) -> str:
    if not endpoint or PLACEHOLDER_MARKER in endpoint:
        raise ConfigurationError("Cloud transcription not configured: set CLOUD_ENDPOINT.")
    return endpoint.rstrip("/")


def check_credential(credential: Optional[str]) -> str:
    credential = (credential or "").strip()
    if not credential.startswith(CREDENTIAL_PREFIX):
        raise ConfigurationError(f"Missing API key ({CREDENTIAL_PREFIX}...).")
    return credential


def parse_cloud_response(data: dict[str, Any]) -> TranscriptResult:
    """Map the service JSON to a TranscriptResult. Raises BackendRunError on an unexpected shape."""
    if not isinstance(data, dict):
        raise BackendRunError(f"Unexpected cloud response: expected an object, got {type(data).__name__}")
    raw_segments = data.get("segments") or []
    if not isinstance(raw_segments, list):
        raise BackendRunError(f"Unexpected cloud response: segments is {type(raw_segments).__name__}")

    segments: list[TextSegment] = []
    for seg in raw_segments:
        if not isinstance(seg, dict):
            continue
        speaker = seg.get("speaker") or seg.get("label") or "SPEAKER"
        text = seg.get("text") or seg.get("transcript") or ""
        start = seg.get("start")
        end = seg.get("end")
        segments.append(TextSegment(
            speaker=str(speaker),
            text=str(text),
            start=float(start) if start is not None else None,
            end=float(end) if end is not None else None,
        ))

    text = data.get("text") or ""
    if not isinstance(text, str):
        raise BackendRunError(f"Unexpected cloud response: text is {type(text).__name__}")
    if not text and segments:
        text = " ".join(s.text.strip() for s in segments if s.text.strip())
    return TranscriptResult(text=text, segments=segments, raw=data)


class CloudTranscriptionBackend(TranscriptionBackendPort):
    """Stateless per-call backend. One instance is built per job with that job's credential."""

    label = "CLOUD"
    consumes_pcm = False

    def __init__(
        self,
        endpoint: Optional[str] = None,
        credential: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        self._endpoint = endpoint
        self._credential = credential
        self._session = session or requests.Session()

    def load(self, progress: Optional[ProgressCallback] = None) -> None:
        check_endpoint(self._endpoint)
        if progress:
            progress(1.0, f"{self.label}: ready")

    def run(
        self,
        payload: BackendPayload,
        progress: Optional[ProgressCallback] = None,
        language: Optional[str] = None,
    ) -> TranscriptResult:
        if not isinstance(payload, Chunk):
            raise BackendRunError(f"{self.label}: expected a media chunk, got {type(payload).__name__}")

        url = f"{check_endpoint(self._endpoint)}/transcribe"
        credential = check_credential(self._credential)

        if progress:
            progress(0.0, f"{self.label}: uploading {payload.filename}...")

        files = {"file": (payload.filename, payload.data, payload.mime_type)}
        data = {"language": language} if language else None
        headers = {"Authorization": f"Bearer {credential}"}
        try:
            response = self._session.post(
                url, files=files, data=data, headers=headers, timeout=CLOUD_TIMEOUT_SECONDS,
            )
        except RequestException as e:
            raise BackendRunError(f"{self.label} proxy error: {e}") from e

        if not response.ok:
            body = response.text.strip()
            logger.error(f"Cloud transcription failed ({response.status_code}): {body}")
            raise BackendRunError(f"{self.label} proxy error: {body or response.status_code}")

        try:
            result = parse_cloud_response(response.json())
        except (ValueError, TypeError) as e:
            raise BackendRunError(f"{self.label}: malformed response: {e}") from e

        if progress:
            progress(1.0, f"{self.label}: done")
        return result

    def model_name(self) -> str:
        return "cloud"

    def is_loaded(self) -> bool:
        return bool(self._endpoint) and PLACEHOLDER_MARKER not in (self._endpoint or "")

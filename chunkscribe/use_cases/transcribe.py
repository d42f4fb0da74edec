"""TranscribeMediaUseCase — orchestrates the chunked media pipeline.

Accepts all ports via dependency injection. A job moves through
Idle → Splitting → per chunk (Normalizing → BackendLoading → Transcribing →
Merging) → Assembling → Done, or Failed on the first error. Chunks are
processed one after another because the transcoder and the loaded models
are shared single-owner resources.
"""

import json
import logging
from typing import Optional

from chunkscribe.adapters.local.artifacts import build_archive, build_transcript_document
from chunkscribe.config import BackendRegistry
from chunkscribe.domain.alignment import lines_for_result
from chunkscribe.domain.models import (
    Chunk, Job, JobOptions, JobState, Mode, TranscriptResult,
    detect_media_kind, get_quality_profile,
)
from chunkscribe.domain.progress import (
    ASSEMBLING, CHUNK_LOAD, CHUNK_NORMALIZE, CHUNK_RUN, ENGINE_LOAD, SPLITTING, TRANSCRIBING,
    Band, ProgressAggregator,
)
from chunkscribe.exceptions import ChunkscribeError, ValidationError
from chunkscribe.ports.artifacts import ArtifactStorePort
from chunkscribe.ports.audio import AudioProcessingPort, has_audio
from chunkscribe.ports.backend import TranscriptionBackendPort
from chunkscribe.ports.progress import ProgressPort

logger = logging.getLogger(__name__)

TRANSCRIPT_DOCUMENT = "transcript.docx"
TRANSCRIPT_JSON = "transcript.json"
ARCHIVE_NAME = "output.zip"
ARCHIVE_CHUNK_FOLDER = "chunks"


class TranscribeMediaUseCase:
    def __init__(
        self,
        audio: AudioProcessingPort,
        backends: BackendRegistry,
        artifacts: ArtifactStorePort,
        progress: ProgressPort,
    ):
        self._audio = audio
        self._backends = backends
        self._artifacts = artifacts
        self._progress = progress

    def create_job(
        self,
        filename: str,
        data: bytes,
        content_type: Optional[str],
        options: JobOptions,
    ) -> Job:
        """Validate a start request. Nothing is split or loaded here."""
        if not isinstance(options.chunk_seconds, int) or options.chunk_seconds < 1:
            raise ValidationError(f"Invalid split time: {options.chunk_seconds!r}")
        if not filename or not data:
            raise ValidationError("Pick a file first.")

        media_kind = detect_media_kind(content_type, filename)
        get_quality_profile(options.quality)
        self._backends.validate(options)

        job = Job(filename=filename, data=data, media_kind=media_kind, options=options)
        logger.info(
            f"[{job.id}] Created job for {filename} ({media_kind.value}, "
            f"{len(data) / 1024 / 1024:.1f} MB, mode={options.mode.value}, every {options.chunk_seconds}s)"
        )
        return job

    def execute(self, job: Job) -> Job:
        """Run the whole pipeline for a job. Raises the first ChunkscribeError."""
        aggregator = ProgressAggregator(
            listener=lambda value, message: self._progress.report(job.id, job.state.value, value, message)
        )

        try:
            self._set_state(job, JobState.SPLITTING)
            aggregator.update(0.0, "Starting...")
            self._audio.load()
            aggregator.update(ENGINE_LOAD.end, "Splitting into chunks...")

            chunks = self._audio.split(job.data, job.media_kind, job.options, base_name=job.base_name)
            job.chunks = chunks
            for chunk in chunks:
                self._save(job, chunk.filename, chunk.data)
            aggregator.update(SPLITTING.end, f"Created {len(chunks)} chunks.")

            backend = self._backends.get(job.options)
            if backend is not None:
                logger.info(f"[{job.id}] Transcription mode: {job.options.mode.value.upper()}")
                for chunk, band in zip(chunks, TRANSCRIBING.split(len(chunks))):
                    self._process_chunk(job, chunk, len(chunks), backend, band, aggregator)

            self._assemble(job, aggregator)

            self._set_state(job, JobState.DONE)
            aggregator.update(1.0, "Done!")
            logger.info(f"[{job.id}] Done: {len(chunks)} chunks, {len(job.lines)} transcript lines")
            return job

        except Exception as e:
            failed_stage = job.state.value
            if isinstance(e, ChunkscribeError) and e.stage is None:
                e.stage = failed_stage
            job.error = e
            job.state = JobState.FAILED
            self._progress.report(job.id, JobState.FAILED.value, aggregator.value, f"Error: {e}")
            logger.error(f"[{job.id}] Failed during {failed_stage}: {type(e).__name__}: {e}")
            raise

        finally:
            # Chunk bytes live in the artifact store from here on.
            job.release_payloads()

    def _process_chunk(
        self,
        job: Job,
        chunk: Chunk,
        total: int,
        backend: TranscriptionBackendPort,
        band: Band,
        aggregator: ProgressAggregator,
    ) -> None:
        label = f"Chunk {chunk.index + 1}/{total}"
        result: Optional[TranscriptResult] = None
        payload = chunk

        if backend.consumes_pcm:
            self._set_state(job, JobState.NORMALIZING)
            aggregator.update(band.at(CHUNK_NORMALIZE[0]), f"{label}: extracting audio...")
            samples = self._audio.normalize(chunk.data)
            if has_audio(samples):
                payload = samples
            else:
                logger.info(f"[{job.id}] {label}: skipped (no audio detected, {len(samples)} samples)")
                result = TranscriptResult.empty()

        if result is None:
            if not backend.is_loaded():
                self._set_state(job, JobState.BACKEND_LOADING)
                backend.load(progress=aggregator.reporter(band.sub(*CHUNK_LOAD)))

            self._set_state(job, JobState.TRANSCRIBING)
            aggregator.update(band.at(CHUNK_RUN[0]), f"{label}: transcribing...")
            result = backend.run(
                payload,
                progress=aggregator.reporter(band.sub(*CHUNK_RUN)),
                language=job.options.language,
            )

        self._set_state(job, JobState.MERGING)
        offset = float(chunk.index * job.options.chunk_seconds)
        lines = lines_for_result(result, offset=offset)
        job.lines.extend(lines)
        job.results.append({"index": chunk.index, "chunk": chunk.filename, "result": result.raw})
        aggregator.update(band.end, f"{label}: {len(lines)} lines")

    def _assemble(self, job: Job, aggregator: ProgressAggregator) -> None:
        self._set_state(job, JobState.ASSEMBLING)
        aggregator.update(ASSEMBLING.start, "Building ZIP...")

        entries = [(f"{ARCHIVE_CHUNK_FOLDER}/{c.filename}", c.data) for c in job.chunks]

        if job.options.mode != Mode.OFF:
            document = build_transcript_document(job.lines)
            dump = json.dumps(job.results, indent=2, ensure_ascii=False).encode("utf-8")
            self._save(job, TRANSCRIPT_DOCUMENT, document)
            self._save(job, TRANSCRIPT_JSON, dump)
            entries.append((TRANSCRIPT_DOCUMENT, document))
            entries.append((TRANSCRIPT_JSON, dump))

        aggregator.update(ASSEMBLING.at(0.5), "Building ZIP...")
        self._save(job, ARCHIVE_NAME, build_archive(entries))

    def _save(self, job: Job, name: str, data: bytes) -> None:
        self._artifacts.save(job.id, name, data)
        if name not in job.artifacts:
            job.artifacts.append(name)

    @staticmethod
    def _set_state(job: Job, state: JobState) -> None:
        if job.state != state:
            logger.debug(f"[{job.id}] {job.state.value} -> {state.value}")
            job.state = state

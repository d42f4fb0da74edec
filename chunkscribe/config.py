import os
import logging
import threading
from typing import Any, Callable, Dict, Optional
from pathlib import Path

from dotenv import load_dotenv

from chunkscribe.domain.models import JobOptions, Mode
from chunkscribe.ports.backend import TranscriptionBackendPort

logger = logging.getLogger(__name__)

load_dotenv()

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8001
DEFAULT_CHUNK_SECONDS = 60
DEFAULT_MODE = "off"
DEFAULT_QUALITY = "standard"
DEFAULT_SHERPA_MODEL_DIR = "/models/sherpa-onnx"
DEFAULT_DIARIZATION_MODEL = "pyannote/speaker-diarization-3.1"


class Config:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(Config, cls).__new__(cls)
            cls._instance._initialize()
        return cls._instance

    def _initialize(self):
        self.host = os.environ.get("HOST", DEFAULT_HOST)
        self.port = int(os.environ.get("PORT", DEFAULT_PORT))
        self.debug = os.environ.get("DEBUG", "0") == "1"
        self.chunk_seconds = int(os.environ.get("CHUNK_SECONDS", DEFAULT_CHUNK_SECONDS))
        self.default_mode = os.environ.get("DEFAULT_MODE", DEFAULT_MODE).lower()
        self.default_quality = os.environ.get("DEFAULT_QUALITY", DEFAULT_QUALITY).lower()
        self.artifacts_dir = os.environ.get("ARTIFACTS_DIR", "/tmp/chunkscribe/artifacts")
        self.work_dir = os.environ.get("TEMP_DIR", "/tmp/chunkscribe/work")
        self.ffmpeg_binary = os.environ.get("FFMPEG_BINARY", "ffmpeg")
        self.sherpa_model_dir = os.environ.get("SHERPA_MODEL_DIR", DEFAULT_SHERPA_MODEL_DIR)
        self.fast_device = os.environ.get("FAST_DEVICE", "cuda").lower()
        self.diarization_model = os.environ.get("DIARIZATION_MODEL", DEFAULT_DIARIZATION_MODEL)
        self.hf_token = os.environ.get("HF_TOKEN") or os.environ.get("HUGGINGFACE_ACCESS_TOKEN")
        self.cloud_endpoint = os.environ.get("CLOUD_ENDPOINT", "").strip() or None
        Path(self.artifacts_dir).mkdir(parents=True, exist_ok=True)
        Path(self.work_dir).mkdir(parents=True, exist_ok=True)

    def get_hf_token(self) -> Optional[str]:
        return self.hf_token

    def as_dict(self) -> Dict[str, Any]:
        return {
            "host": self.host,
            "port": self.port,
            "debug": self.debug,
            "chunk_seconds": self.chunk_seconds,
            "default_mode": self.default_mode,
            "default_quality": self.default_quality,
            "fast_device": self.fast_device,
            "diarization_model": self.diarization_model,
            "has_hf_token": self.hf_token is not None,
            "cloud_configured": self.cloud_endpoint is not None,
        }


config = Config()


def get_config() -> Config:
    return config


class BackendRegistry:
    """Process-wide backend instances, one per local mode, created on first use.

    Local backends hold loaded models and are shared by every job. The cloud
    backend is stateless and built per job with that job's credential.
    """

    def __init__(self, cloud_endpoint: Optional[str] = None, cloud_session=None):
        self._cloud_endpoint = cloud_endpoint
        self._cloud_session = cloud_session
        self._factories: dict[Mode, Callable[[], TranscriptionBackendPort]] = {}
        self._instances: dict[Mode, TranscriptionBackendPort] = {}
        self._lock = threading.Lock()

    def register(self, mode: Mode, factory: Callable[[], TranscriptionBackendPort]) -> None:
        self._factories[mode] = factory

    def validate(self, options: JobOptions) -> None:
        """Fail fast on configuration problems, before any chunk is produced."""
        from chunkscribe.adapters.cloud.transcription import check_credential, check_endpoint
        from chunkscribe.exceptions import ConfigurationError

        if options.mode == Mode.CLOUD:
            check_endpoint(self._cloud_endpoint)
            check_credential(options.credential)
        elif options.mode != Mode.OFF and options.mode not in self._factories:
            raise ConfigurationError(f"No backend registered for mode {options.mode.value!r}")

    def get(self, options: JobOptions) -> Optional[TranscriptionBackendPort]:
        if options.mode == Mode.OFF:
            return None

        self.validate(options)
        if options.mode == Mode.CLOUD:
            from chunkscribe.adapters.cloud.transcription import CloudTranscriptionBackend
            return CloudTranscriptionBackend(
                endpoint=self._cloud_endpoint,
                credential=options.credential,
                session=self._cloud_session,
            )

        with self._lock:
            backend = self._instances.get(options.mode)
            if backend is None:
                backend = self._factories[options.mode]()
                self._instances[options.mode] = backend
                logger.info(f"Created {type(backend).__name__} for mode={options.mode.value}")
            return backend


def create_backend_registry(cfg: Config) -> BackendRegistry:
    """Register the local backends with lazy imports so unused frameworks are never loaded."""
    registry = BackendRegistry(cloud_endpoint=cfg.cloud_endpoint)

    def _fast():
        from chunkscribe.adapters.sherpa.transcription import SherpaFastBackend
        return SherpaFastBackend(model_dir=cfg.sherpa_model_dir, device=cfg.fast_device)

    def _diarized():
        from chunkscribe.adapters.pyannote.diarization import PyannoteDiarizationAdapter
        from chunkscribe.adapters.sherpa.diarized import SherpaDiarizedBackend
        diarization = PyannoteDiarizationAdapter(
            model_id=cfg.diarization_model,
            access_token=cfg.get_hf_token(),
            device="cpu",
        )
        return SherpaDiarizedBackend(diarization, model_dir=cfg.sherpa_model_dir)

    registry.register(Mode.FAST, _fast)
    registry.register(Mode.DIARIZED, _diarized)
    return registry


def create_audio_adapter(cfg: Config):
    """Create the audio processing adapter (always FFmpeg)."""
    from chunkscribe.adapters.ffmpeg.audio import FFmpegAudioAdapter
    from chunkscribe.adapters.ffmpeg.engine import FFmpegEngine
    return FFmpegAudioAdapter(FFmpegEngine(binary=cfg.ffmpeg_binary, work_root=cfg.work_dir))


def create_infra_adapters(cfg: Config) -> Dict[str, Any]:
    """Create job queue, progress and artifact adapters."""
    from chunkscribe.adapters.local.artifacts import LocalArtifactStore
    from chunkscribe.adapters.local.log_progress import MemoryProgressAdapter
    from chunkscribe.adapters.local.thread_job import ThreadJobAdapter

    adapters = {
        "job_queue": ThreadJobAdapter(),
        "progress": MemoryProgressAdapter(),
        "artifacts": LocalArtifactStore(cfg.artifacts_dir),
    }
    logger.info(f"Infra adapters: {', '.join(type(v).__name__ for v in adapters.values())}")
    return adapters

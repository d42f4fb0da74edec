"""SherpaRecognizer — offline transducer ASR with token timestamps.

Splits audio into sub-chunks that fit the encoder's attention window (~100s max),
decodes each sub-chunk as its own stream, and merges the offset-corrected
token timestamps. Used by both the fast and the diarized backend.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Callable, Optional

import numpy as np

from chunkscribe.domain.models import WordToken

logger = logging.getLogger(__name__)

# Expected model files (downloaded from the sherpa-onnx GitHub releases)
REQUIRED_FILES = {
    "asr": ["encoder.int8.onnx", "decoder.int8.onnx", "joiner.int8.onnx", "tokens.txt"],
}

DEFAULT_MODEL_DIR = "/models/sherpa-onnx"
SAMPLE_RATE = 16000

# Max duration per sub-chunk (seconds). Parakeet TDT's self-attention supports
# ~1250 frames at 12.5 fps = 100s. Use 80s for safety margin.
MAX_CHUNK_SECONDS = 80

# A token only carries its start time; assume this duration for the last one.
TOKEN_DURATION = 0.1

WORD_BOUNDARY_MARKERS = (" ", "▁")


@dataclass
class DecodedAudio:
    text: str
    tokens: list[str] = field(default_factory=list)
    timestamps: list[float] = field(default_factory=list)
    duration: float = 0.0


def tokens_to_words(tokens: list[str], timestamps: list[float], duration: float) -> list[WordToken]:
    """Group BPE tokens into words.

    A token starting with a space or "▁" opens a new word. Each word keeps
    its leading space so joining words needs no separator. A word ends one
    token-duration after its last token, but never after the next word starts.
    """
    groups: list[tuple[str, float, float]] = []
    for token, ts in zip(tokens, timestamps):
        piece = token.replace("▁", " ")
        if not groups or token.startswith(WORD_BOUNDARY_MARKERS):
            groups.append((piece, ts, ts))
        else:
            text, start, _ = groups[-1]
            groups[-1] = (text + piece, start, ts)

    words: list[WordToken] = []
    for i, (text, start, last) in enumerate(groups):
        end = last + TOKEN_DURATION
        if i + 1 < len(groups):
            end = min(end, groups[i + 1][1])
        if duration > 0:
            end = min(end, duration)
        words.append(WordToken(text=text, start=start, end=max(end, start)))
    return words


class SherpaRecognizer:
    def __init__(self, model_dir: str = DEFAULT_MODEL_DIR, provider: str = "cuda", num_threads: int = 4):
        self._model_dir = model_dir
        self._provider = provider
        self._num_threads = num_threads
        self._recognizer = None

    @property
    def provider(self) -> str:
        return self._provider

    def load(self) -> None:
        """Load ASR model."""
        import sherpa_onnx

        self._ensure_models()

        logger.info(f"Loading Sherpa-ONNX ASR model (provider={self._provider})...")
        self._recognizer = sherpa_onnx.OfflineRecognizer.from_transducer(
            encoder=os.path.join(self._model_dir, "encoder.int8.onnx"),
            decoder=os.path.join(self._model_dir, "decoder.int8.onnx"),
            joiner=os.path.join(self._model_dir, "joiner.int8.onnx"),
            tokens=os.path.join(self._model_dir, "tokens.txt"),
            model_type="nemo_transducer",
            provider=self._provider,
            num_threads=self._num_threads,
        )
        logger.info(f"ASR model loaded: {self._model_dir}")

    def is_loaded(self) -> bool:
        return self._recognizer is not None

    def decode(
        self,
        audio: np.ndarray,
        progress: Optional[Callable[[float], None]] = None,
    ) -> DecodedAudio:
        """Decode 16 kHz mono float32 samples sub-chunk by sub-chunk."""
        if self._recognizer is None:
            raise RuntimeError("Sherpa recognizer not loaded")

        duration = len(audio) / SAMPLE_RATE
        chunk_samples = MAX_CHUNK_SECONDS * SAMPLE_RATE
        num_chunks = max(1, int(np.ceil(len(audio) / chunk_samples)))
        logger.info(f"Decoding {duration:.2f}s in {num_chunks} sub-chunks of {MAX_CHUNK_SECONDS}s")

        all_tokens: list[str] = []
        all_timestamps: list[float] = []
        text_parts: list[str] = []

        for i in range(num_chunks):
            start_sample = i * chunk_samples
            end_sample = min((i + 1) * chunk_samples, len(audio))
            offset = start_sample / SAMPLE_RATE

            stream = self._recognizer.create_stream()
            stream.accept_waveform(SAMPLE_RATE, audio[start_sample:end_sample])
            self._recognizer.decode_stream(stream)

            result = stream.result
            if result.tokens:
                all_tokens.extend(result.tokens)
                all_timestamps.extend(t + offset for t in result.timestamps)
            if result.text.strip():
                text_parts.append(result.text.strip())

            if progress:
                progress((i + 1) / num_chunks)

        full_text = " ".join(text_parts)
        logger.info(f"Got {len(all_tokens)} tokens, {len(full_text)} characters")
        return DecodedAudio(text=full_text, tokens=all_tokens, timestamps=all_timestamps, duration=duration)

    def _ensure_models(self):
        """Verify all required model files are present."""
        missing = []
        for group, files in REQUIRED_FILES.items():
            for f in files:
                path = os.path.join(self._model_dir, f)
                if os.path.exists(path):
                    size_mb = os.path.getsize(path) / (1024 * 1024)
                    logger.info(f"  {group}: {f} ({size_mb:.1f} MB)")
                else:
                    missing.append(f)
                    logger.error(f"  {group}: {f} MISSING")

        if missing:
            raise FileNotFoundError(f"Missing model files in {self._model_dir}: {missing}")

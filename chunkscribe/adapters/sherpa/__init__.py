"""Sherpa-ONNX adapters for the fast and diarized transcription backends."""

from .recognizer import SherpaRecognizer
from .transcription import SherpaFastBackend
from .diarized import SherpaDiarizedBackend

__all__ = ["SherpaRecognizer", "SherpaFastBackend", "SherpaDiarizedBackend"]

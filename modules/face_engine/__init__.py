"""Face recognition engine module.

This package provides the single-face detector, the embedder and the
preprocessing helpers that turn encoded image bytes into network tensors.
"""

from .detector import BoundingBox, FaceDetector, detect
from .embedder import FaceEmbedder, embed
from .errors import (
    DetectError,
    EmbedError,
    FaceEngineError,
    ImageDecodeError,
    InferenceError,
    ModelLoadError,
    NoFaceDetected,
    NotInitialized,
)

__all__ = [
    "BoundingBox",
    "FaceDetector",
    "FaceEmbedder",
    "detect",
    "embed",
    "DetectError",
    "EmbedError",
    "FaceEngineError",
    "ImageDecodeError",
    "InferenceError",
    "ModelLoadError",
    "NoFaceDetected",
    "NotInitialized",
]

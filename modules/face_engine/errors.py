"""Exception hierarchy for the face engine."""

from __future__ import annotations


class FaceEngineError(Exception):
    """Base class for all face engine failures."""


class ModelLoadError(FaceEngineError):
    """A model definition is unreadable, malformed or uses unsupported operators."""

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"Failed to load {name} model: {reason}")
        self.name = name


class DetectError(FaceEngineError):
    """Any failure raised by the detection pipeline."""


class EmbedError(FaceEngineError):
    """Any failure raised by the embedding pipeline."""


class NotInitialized(DetectError, EmbedError):
    """Inference was requested before the model registry was initialized."""


class ImageDecodeError(DetectError, EmbedError):
    """Input bytes are not a decodable raster image."""


class InferenceError(DetectError, EmbedError):
    """Graph execution failed or produced outputs of an unexpected shape."""


class NoFaceDetected(DetectError):
    """The detector ran but produced no candidate boxes."""


__all__ = [
    "FaceEngineError",
    "ModelLoadError",
    "DetectError",
    "EmbedError",
    "NotInitialized",
    "ImageDecodeError",
    "InferenceError",
    "NoFaceDetected",
]

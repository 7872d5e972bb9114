"""Single-face detector running the UltraFace graph."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Sequence, Tuple

import numpy as np

from config import DETECTOR_INPUT
from modules import model_registry
from modules.profiler import StageHook, timed

from .errors import InferenceError, NoFaceDetected
from .utils import decode_image, resize, to_tensor

if TYPE_CHECKING:  # pragma: no cover
    from modules.model_registry import ModelRegistry


@dataclass(frozen=True)
class BoundingBox:
    """Face box in relative network coordinates, not scaled to the image."""

    left: float
    top: float
    right: float
    bottom: float

    @classmethod
    def from_raw(cls, raw: Sequence[float]) -> "BoundingBox":
        return cls(
            left=float(raw[0]),
            top=float(raw[1]),
            right=float(raw[2]),
            bottom=float(raw[3]),
        )

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.left, self.top, self.right, self.bottom)


# select_best_box routine
def select_best_box(outputs: Sequence[np.ndarray]) -> Tuple[BoundingBox, float]:
    """Pick the most confident candidate from raw detector ``outputs``.

    ``outputs[0]`` holds scores shaped ``(1, N, classes)`` with the face score
    at ``[0, i, 1]``; ``outputs[1]`` holds ``N`` boxes as consecutive groups of
    four floats. Equal scores resolve to the lowest candidate index.
    """
    if len(outputs) < 2:
        raise InferenceError(f"detector returned {len(outputs)} outputs, expected 2")
    scores = np.asarray(outputs[0], dtype=np.float32)
    coords = np.asarray(outputs[1], dtype=np.float32).reshape(-1)

    if scores.size == 0 and coords.size == 0:
        raise NoFaceDetected("No face detected")
    if scores.ndim != 3 or scores.shape[0] != 1 or scores.shape[2] < 2:
        raise InferenceError(f"unexpected score tensor shape {scores.shape}")
    if coords.size % 4:
        raise InferenceError(f"box tensor holds {coords.size} floats, not a multiple of 4")

    confidences = scores[0, :, 1]
    boxes = coords.reshape(-1, 4)
    if boxes.shape[0] != confidences.shape[0]:
        raise InferenceError(
            f"{boxes.shape[0]} boxes do not match {confidences.shape[0]} scores"
        )
    if boxes.shape[0] == 0:
        raise NoFaceDetected("No face detected")
    if np.isnan(confidences).any():
        raise InferenceError("detector produced NaN confidences")

    best = int(np.argmax(confidences))
    return BoundingBox.from_raw(boxes[best]), float(confidences[best])


class FaceDetector:
    """Locate the most confident face in an encoded image."""

    def __init__(
        self,
        registry: "ModelRegistry | None" = None,
        hook: StageHook | None = None,
    ) -> None:
        self.registry = registry
        self.hook = hook

    def _graph(self):
        registry = self.registry
        if registry is None:
            registry = model_registry.default_registry
        return registry.get("detector")

    # detect routine
    def detect(self, data: bytes) -> Tuple[BoundingBox, float]:
        """Return the best face box in ``data`` and its confidence.

        Raises
        ------
        NotInitialized
            The registry has not loaded its graphs yet.
        ImageDecodeError
            ``data`` is not a decodable image.
        InferenceError
            The graph failed or its outputs break the expected layout.
        NoFaceDetected
            The graph produced no candidates.
        """
        graph = self._graph()
        hook = self.hook
        with timed(hook, "decode"):
            image = decode_image(data)
        with timed(hook, "resize"):
            image = resize(image, DETECTOR_INPUT.width, DETECTOR_INPUT.height)
        with timed(hook, "normalize"):
            tensor = to_tensor(image, DETECTOR_INPUT.mean, DETECTOR_INPUT.std)
        with timed(hook, "run"):
            try:
                outputs = graph.run(tensor)
            except Exception as exc:
                raise InferenceError(f"detector run failed: {exc}") from exc
        with timed(hook, "postprocess"):
            return select_best_box(outputs)


def detect(
    data: bytes, registry: "ModelRegistry | None" = None
) -> Tuple[BoundingBox, float]:
    """Detect the best face in ``data`` using ``registry`` or the default one."""
    return FaceDetector(registry).detect(data)

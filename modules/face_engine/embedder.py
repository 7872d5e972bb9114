"""Face embedding utilities."""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from config import EMBEDDER_INPUT
from modules import model_registry
from modules.profiler import StageHook, timed

from .errors import InferenceError
from .utils import decode_image, resize, to_tensor

if TYPE_CHECKING:  # pragma: no cover
    from modules.model_registry import ModelRegistry


class FaceEmbedder:
    """Compute embeddings for pre-cropped face images."""

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
        return registry.get("embedder")

    # embed routine
    def embed(self, data: bytes) -> np.ndarray:
        """Return the raw, unnormalized embedding of the face image ``data``.

        No face-presence check is made; any decodable image yields a vector.
        """
        graph = self._graph()
        hook = self.hook
        with timed(hook, "decode"):
            image = decode_image(data)
        with timed(hook, "resize"):
            image = resize(image, EMBEDDER_INPUT.width, EMBEDDER_INPUT.height)
        with timed(hook, "normalize"):
            tensor = to_tensor(image)
        with timed(hook, "run"):
            try:
                outputs = graph.run(tensor)
            except Exception as exc:
                raise InferenceError(f"embedder run failed: {exc}") from exc
        with timed(hook, "postprocess"):
            if not len(outputs):
                raise InferenceError("embedder returned no outputs")
            return np.asarray(outputs[0], dtype=np.float32).reshape(-1)


def embed(data: bytes, registry: "ModelRegistry | None" = None) -> np.ndarray:
    """Embed the face in ``data`` using ``registry`` or the default one."""
    return FaceEmbedder(registry).embed(data)

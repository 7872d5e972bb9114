"""Shared pytest fixtures for face engine testing."""

import io
import sys
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from modules.model_registry import ModelRegistry


class FakeGraph:
    """Stand-in graph recording every tensor it is asked to run."""

    def __init__(self, outputs=None, fn=None):
        self.outputs = outputs
        self.fn = fn
        self.calls = []

    def run(self, tensor):
        self.calls.append(tensor)
        if self.fn is not None:
            return self.fn(tensor)
        return self.outputs


def make_image_bytes(width=64, height=48, color=(128, 128, 128), fmt="PNG") -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format=fmt)
    return buf.getvalue()


def detector_outputs(confidences, boxes):
    """Build UltraFace-shaped outputs: scores (1, N, 2) and boxes (1, N, 4)."""
    conf = np.asarray(confidences, dtype=np.float32)
    scores = np.stack([1.0 - conf, conf], axis=-1).reshape(1, -1, 2)
    coords = np.asarray(boxes, dtype=np.float32).reshape(1, -1, 4)
    return [scores, coords]


def make_registry(detector, embedder) -> ModelRegistry:
    graphs = {b"detector": detector, b"embedder": embedder}
    return ModelRegistry(
        sources={"detector": b"detector", "embedder": b"embedder"},
        loader=lambda data: graphs[data],
    )


@pytest.fixture
def image_bytes() -> bytes:
    return make_image_bytes()


@pytest.fixture
def detector_graph():
    return FakeGraph(
        detector_outputs(
            [0.2, 0.9, 0.5],
            [
                [0.0, 0.1, 0.2, 0.3],
                [0.4, 0.5, 0.6, 0.7],
                [0.8, 0.9, 1.0, 1.1],
            ],
        )
    )


@pytest.fixture
def embedder_graph():
    # Per-channel means keep the output tied to the input tensor.
    return FakeGraph(fn=lambda t: [t.mean(axis=(2, 3))])


@pytest.fixture
def registry(detector_graph, embedder_graph) -> ModelRegistry:
    reg = make_registry(detector_graph, embedder_graph)
    reg.initialize()
    return reg

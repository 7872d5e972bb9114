"""Inference graph interface and the ONNX Runtime implementation."""

from __future__ import annotations

from typing import List, Protocol, Sequence

import numpy as np
import onnxruntime as ort

_OPTIMIZATION_LEVELS = {
    "disabled": ort.GraphOptimizationLevel.ORT_DISABLE_ALL,
    "basic": ort.GraphOptimizationLevel.ORT_ENABLE_BASIC,
    "extended": ort.GraphOptimizationLevel.ORT_ENABLE_EXTENDED,
    "all": ort.GraphOptimizationLevel.ORT_ENABLE_ALL,
}


class InferenceGraph(Protocol):
    def run(self, tensor: np.ndarray) -> Sequence[np.ndarray]:
        ...


class OnnxGraph:
    """Runnable ONNX graph with a single image input."""

    def __init__(self, session: "ort.InferenceSession") -> None:
        inputs = session.get_inputs()
        if len(inputs) != 1:
            raise ValueError(f"expected a single graph input, found {len(inputs)}")
        self._session = session
        self.input_name = inputs[0].name
        self.input_shape = tuple(inputs[0].shape)

    def _check_shape(self, tensor: np.ndarray) -> None:
        # Symbolic dimensions come back as strings or None and match anything.
        expected = self.input_shape
        if len(tensor.shape) == len(expected) and all(
            not isinstance(e, int) or e == d for e, d in zip(expected, tensor.shape)
        ):
            return
        raise ValueError(
            f"graph input {self.input_name!r} expects shape {expected}, got {tensor.shape}"
        )

    def run(self, tensor: np.ndarray) -> List[np.ndarray]:
        self._check_shape(tensor)
        return self._session.run(None, {self.input_name: tensor})


def load_onnx_graph(
    data: bytes,
    providers: Sequence[str] = ("CPUExecutionProvider",),
    optimization: str = "all",
    intra_op_threads: int = 0,
) -> OnnxGraph:
    """Build an optimized, runnable graph from serialized ONNX ``data``.

    Raises whatever ONNX Runtime raises for malformed protobufs or unsupported
    operators; callers translate those into :class:`ModelLoadError`.
    """
    try:
        level = _OPTIMIZATION_LEVELS[optimization]
    except KeyError:
        raise ValueError(f"unknown graph optimization level {optimization!r}") from None
    options = ort.SessionOptions()
    options.graph_optimization_level = level
    if intra_op_threads:
        options.intra_op_num_threads = int(intra_op_threads)
    session = ort.InferenceSession(data, sess_options=options, providers=list(providers))
    return OnnxGraph(session)

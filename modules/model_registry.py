"""Shared registry for the detector and embedder graphs."""

from __future__ import annotations

import threading
import time
from pathlib import Path
from types import MappingProxyType
from typing import Callable, Dict, Mapping, Union

import psutil
from loguru import logger

from config import config as app_config
from modules.face_engine.errors import ModelLoadError, NotInitialized
from modules.face_engine.graph import InferenceGraph, load_onnx_graph

GRAPH_NAMES = ("detector", "embedder")

ModelSource = Union[bytes, str, Path]
GraphLoader = Callable[[bytes], InferenceGraph]


def _log_mem(note: str) -> None:
    mem = psutil.virtual_memory()
    logger.debug(f"{note}: RAM available {mem.available / (1024**3):.2f} GB")


def _default_sources() -> Dict[str, ModelSource]:
    return {
        "detector": app_config["detector_model"],
        "embedder": app_config["embedder_model"],
    }


def _default_loader(data: bytes) -> InferenceGraph:
    return load_onnx_graph(
        data,
        providers=app_config.get("onnx_providers") or ["CPUExecutionProvider"],
        optimization=app_config.get("graph_optimization", "all"),
        intra_op_threads=app_config.get("intra_op_threads", 0),
    )


def _read_source(name: str, source: ModelSource) -> bytes:
    if isinstance(source, (bytes, bytearray, memoryview)):
        data = bytes(source)
    else:
        try:
            data = Path(source).read_bytes()
        except OSError as exc:
            raise ModelLoadError(name, f"cannot read {source}: {exc}") from exc
    if not data:
        raise ModelLoadError(name, "model definition is empty")
    return data


class ModelRegistry:
    """Owns the ``detector`` and ``embedder`` graphs.

    ``initialize`` builds both graphs and installs them together; ``get`` hands
    out the installed graphs without locking. Graphs are never mutated after
    load, so concurrent readers are safe once ``initialize`` has returned.
    """

    def __init__(
        self,
        sources: Mapping[str, ModelSource] | None = None,
        loader: GraphLoader | None = None,
    ) -> None:
        if sources is not None:
            missing = [n for n in GRAPH_NAMES if n not in sources]
            if missing:
                raise ValueError(f"Missing model sources: {', '.join(missing)}")
            sources = dict(sources)
        self._sources = sources
        self._loader = loader or _default_loader
        self._graphs: Mapping[str, InferenceGraph] | None = None
        self._lock = threading.Lock()

    @property
    def ready(self) -> bool:
        return self._graphs is not None

    def _load(self, name: str, source: ModelSource) -> InferenceGraph:
        data = _read_source(name, source)
        _log_mem(f"Before loading {name} model")
        start = time.perf_counter()
        try:
            graph = self._loader(data)
        except ModelLoadError:
            raise
        except Exception as exc:
            raise ModelLoadError(name, str(exc)) from exc
        logger.debug(
            "{} model loaded in {:.2f}s ({} bytes)",
            name,
            time.perf_counter() - start,
            len(data),
        )
        return graph

    # initialize routine
    def initialize(self) -> None:
        """Load both graphs from scratch and replace any installed ones.

        On failure the previously installed graphs, if any, stay in place.
        """
        with self._lock:
            sources = self._sources if self._sources is not None else _default_sources()
            graphs = {name: self._load(name, sources[name]) for name in GRAPH_NAMES}
            self._graphs = MappingProxyType(graphs)
        logger.info("Model registry ready: {}", ", ".join(GRAPH_NAMES))

    def get(self, name: str) -> InferenceGraph:
        """Return the graph registered under ``name``."""
        graphs = self._graphs
        if graphs is None:
            raise NotInitialized("Model registry used before initialize()")
        if name not in graphs:
            raise KeyError(f"Unknown graph {name!r}; expected one of {GRAPH_NAMES}")
        return graphs[name]


default_registry = ModelRegistry()


def initialize() -> None:
    """Initialize the process-wide default registry."""
    default_registry.initialize()


def get(name: str) -> InferenceGraph:
    """Return ``name`` from the process-wide default registry."""
    return default_registry.get(name)

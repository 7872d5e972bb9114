"""Stage timing hooks for the face engine pipelines."""

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, Optional

from loguru import logger

StageHook = Callable[[str, float], None]


@dataclass
class ProfilerState:
    """Holds the most recent duration recorded per tag."""

    last_inference: Dict[str, float] = field(default_factory=dict)


default_state = ProfilerState()


# log_inference routine
def log_inference(
    tag: str, duration: float, state: ProfilerState = default_state
) -> None:
    """Record an inference stage duration for the given tag."""
    state.last_inference[tag] = duration


# stage_hook routine
def stage_hook(prefix: str, state: ProfilerState = default_state) -> StageHook:
    """Return a pipeline hook recording stages as ``<prefix>.<stage>``."""

    def _hook(stage: str, seconds: float) -> None:
        log_inference(f"{prefix}.{stage}", seconds, state)

    return _hook


# profile_run routine
def profile_run(graph, tag: str, tensor, state: ProfilerState = default_state):
    """Wrap ``graph.run`` and record its duration under ``tag``."""
    start = time.perf_counter()
    outputs = graph.run(tensor)
    log_inference(tag, time.perf_counter() - start, state)
    return outputs


@contextmanager
def timed(hook: Optional[StageHook], stage: str) -> Iterator[None]:
    """Report the duration of the wrapped block to ``hook`` if it succeeds."""
    if hook is None:
        yield
        return
    start = time.perf_counter()
    yield
    hook(stage, time.perf_counter() - start)


# log_stage_timings routine
def log_stage_timings(prefix: str, state: ProfilerState = default_state) -> None:
    """Log recorded timings whose tag starts with ``prefix``."""
    timings = {
        tag: secs
        for tag, secs in state.last_inference.items()
        if tag.startswith(f"{prefix}.")
    }
    if not timings:
        logger.debug(f"[Profiler] {prefix} has no recorded stages")
        return
    parts = ", ".join(f"{tag}={secs * 1000:.1f}ms" for tag, secs in timings.items())
    logger.debug(f"[Profiler] {parts}")

import asyncio
import time
from typing import Any

from loguru import logger

from config import set_config
from modules import model_registry
from modules.model_registry import ModelRegistry


async def preload_models(
    cfg: dict[str, Any] | None = None, registry: ModelRegistry | None = None
) -> bool:
    """Load the detector and embedder graphs before serving requests.

    Returns ``False`` when preloading is disabled by ``cfg``. Load failures
    propagate as :class:`ModelLoadError`; the process cannot serve inference
    without its models.
    """
    if cfg is not None:
        set_config(cfg)
        if not cfg.get("preload_models", True):
            logger.info("Model preload disabled; skipping")
            return False
    target = registry if registry is not None else model_registry.default_registry
    start = time.perf_counter()
    try:
        await asyncio.to_thread(target.initialize)
    except Exception as e:
        logger.exception("Model preload failed: {}", e)
        raise
    logger.info("Face models loaded in {:.2f}s", time.perf_counter() - start)
    return True

"""Face engine configuration and fixed network input geometry."""

from dataclasses import dataclass
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent
ASSETS_DIR = BASE_DIR / "assets"


@dataclass(frozen=True)
class NetworkInput:
    """Input geometry and normalization a trained network expects."""

    width: int
    height: int
    mean: tuple[float, float, float] | None = None
    std: tuple[float, float, float] | None = None

    @property
    def shape(self) -> tuple[int, int, int, int]:
        return (1, 3, self.height, self.width)


# UltraFace RFB-320 was trained on 320x240 ImageNet-normalized RGB input.
DETECTOR_INPUT = NetworkInput(
    width=320,
    height=240,
    mean=(0.485, 0.456, 0.406),
    std=(0.229, 0.224, 0.225),
)

# The recognition network only rescales samples to [0, 1].
EMBEDDER_INPUT = NetworkInput(width=140, height=140)

DEFAULT_CONFIG = {
    "detector_model": str(ASSETS_DIR / "version-RFB-320.onnx"),
    "embedder_model": str(ASSETS_DIR / "facerec.onnx"),
    "onnx_providers": ["CPUExecutionProvider"],
    "graph_optimization": "all",
    "intra_op_threads": 0,
    "preload_models": True,
}

# Global configuration object to share across modules. Default settings may be
# injected at runtime by ``set_config``.
config = DEFAULT_CONFIG.copy()


# set_config routine
def set_config(cfg: dict) -> None:
    """Replace the global configuration with ``cfg``.

    Missing keys fall back to ``DEFAULT_CONFIG`` so callers can rely on every
    documented key being present.
    """

    config.clear()
    config.update(DEFAULT_CONFIG)
    config.update(cfg)

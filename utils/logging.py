"""Central logging configuration for the face engine."""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

DEFAULT_LOG_FILE = Path(__file__).resolve().parent.parent / "face_engine.log"
LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} [{level}] {name}: {message}"


# setup_logging routine


def setup_logging(log_file: str | Path | None = None, level: str = "INFO") -> None:
    """Route loguru output to stderr and a rotating log file."""
    path = Path(log_file) if log_file else DEFAULT_LOG_FILE
    logger.remove()
    logger.add(sys.stderr, format=LOG_FORMAT, level=level)
    logger.add(
        str(path),
        format=LOG_FORMAT,
        level=level,
        rotation="1 MB",
        retention=5,
        encoding="utf-8",
    )

"""Logging configuration using loguru."""
from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

from loguru import logger


def setup_logging(level: str = "INFO") -> None:
    logger.remove()
    logger.add(sys.stderr, level=level)


def add_file_sink(logs_dir: Path, level: Optional[str] = None) -> int:
    """Attach a rotating ``app.log`` sink under ``logs_dir``; returns the sink id."""
    logs_dir.mkdir(parents=True, exist_ok=True)
    return logger.add(
        logs_dir / "app.log",
        level=level or "DEBUG",
        rotation="5 MB",
        retention="7 days",
        enqueue=True,
        backtrace=False,
        diagnose=False,
    )

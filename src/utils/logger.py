"""Loguru setup for the CLI and pipeline runs."""
from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

_CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<level>{message}</level>"
)
_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{line} - {message}"


def setup_logger(log_level: str = "INFO", log_file: Optional[str] = "logs/pipeline.log") -> None:
    """
    Replace loguru's default sink.

    - Console (stderr): coloured, short
    - File: full detail, rotating + compressed; skipped when log_file is None
    """
    logger.remove()
    logger.add(sys.stderr, level=log_level, format=_CONSOLE_FORMAT, colorize=True)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            level="DEBUG",
            format=_FILE_FORMAT,
            rotation="10 MB",
            retention="7 days",
            compression="zip",
            enqueue=True,
        )

    logger.debug(f"Logger initialised | level={log_level} | file={log_file}")

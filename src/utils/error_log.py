"""
Forensic error log.

Appends one JSON entry per failure so a postmortem can replay what the
model was asked and how it answered:

    {"timestamp": ..., "error": {"name", "message", "stack"}, "context": {...}}
"""
from __future__ import annotations

import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import orjson
from loguru import logger


def format_error(error: Any) -> Any:
    """Exceptions become {name, message, stack}; anything else passes through."""
    if isinstance(error, BaseException):
        return {
            "name": type(error).__name__,
            "message": str(error),
            "stack": "".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            ),
        }
    return error


class ErrorLog:
    """Append-only JSON error sink (default: logs/error.log)."""

    def __init__(self, path: str | Path = "logs/error.log") -> None:
        self.path = Path(path)

    def log_error(self, error: Any, context: dict | None = None) -> None:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "error": format_error(error),
            "context": context or {},
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "ab") as f:
                f.write(orjson.dumps(entry, default=str, option=orjson.OPT_INDENT_2))
                f.write(b"\n")
        except OSError as exc:
            # The forensic trail must never break generation.
            logger.warning(f"[ErrorLog] Could not write {self.path}: {exc}")

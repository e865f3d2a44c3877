"""Shared utility functions used across the pipeline."""
from __future__ import annotations

from pathlib import Path
from typing import Any

import orjson


def truncate_text(text: str, max_chars: int = 300) -> str:
    """Truncate text for log and display purposes."""
    if len(text) <= max_chars:
        return text
    return text[:max_chars].rstrip() + "..."


def save_json(data: Any, path: str | Path) -> None:
    """Serialise data to indented JSON with orjson."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        f.write(orjson.dumps(data, option=orjson.OPT_INDENT_2 | orjson.OPT_NON_STR_KEYS))


def load_json(path: str | Path) -> Any:
    with open(Path(path), "rb") as f:
        return orjson.loads(f.read())

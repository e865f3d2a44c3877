"""
Result normalisation.

The model is asked for a top-level JSON array but often wraps it in an
envelope such as {"questions": [...]} or {"data": {"flashcards": [...]}}.
normalize_result() finds the item list without knowing the key names.
"""
from __future__ import annotations

from typing import Any, Mapping

MAX_DEPTH = 32


def normalize_result(raw: Any, max_depth: int = MAX_DEPTH) -> list:
    """
    Return the first list reachable from ``raw``.

    Lists are returned as-is.  Mappings are searched depth-first in key
    order: a list value wins immediately, a mapping value is searched
    before its later siblings.  Anything else, or nesting deeper than
    ``max_depth``, yields [].
    """
    if isinstance(raw, list):
        return raw
    if isinstance(raw, Mapping):
        found = _first_list(raw, max_depth)
        if found is not None:
            return found
    return []


def _first_list(obj: Mapping, depth: int) -> list | None:
    if depth <= 0:
        return None
    for value in obj.values():
        if isinstance(value, list):
            return value
        if isinstance(value, Mapping):
            found = _first_list(value, depth - 1)
            if found is not None:
                return found
    return None

"""
Generated Item Validator
-------------------------
Structural checks on normalised model output before it is accepted.

Quiz items:
    1. question non-empty
    2. exactly 4 options, each non-empty
    3. correctAnswer non-empty (membership in options is NOT checked)
    4. explanation, when present, at most 500 characters

Flashcard items:
    1. front non-empty
    2. back non-empty

Validation is all-or-nothing per chunk: one bad item rejects the whole
chunk's output so persistence never sees a mixed batch from one call.
"""
from __future__ import annotations

from typing import Any

from loguru import logger
from pydantic import TypeAdapter, ValidationError

from src.errors import ValidationRejected
from src.schemas import FlashcardItem, GenerationKind, QuizItem, StudyItem
from src.utils.error_log import ErrorLog

_ADAPTERS: dict[GenerationKind, TypeAdapter] = {
    GenerationKind.QUIZ: TypeAdapter(list[QuizItem]),
    GenerationKind.FLASHCARD: TypeAdapter(list[FlashcardItem]),
}


class ItemValidator:
    """Validates one chunk's worth of items against the schema for ``kind``."""

    def __init__(self, error_log: ErrorLog | None = None) -> None:
        self.error_log = error_log

    def validate(self, items: Any, kind: GenerationKind) -> list[StudyItem]:
        """
        Return the parsed items, or raise ValidationRejected.

        Raises:
            ValidationRejected: any item (or the container) is malformed.
        """
        kind = GenerationKind(kind)
        try:
            return _ADAPTERS[kind].validate_python(items)
        except ValidationError as exc:
            detail = f"{exc.error_count()} error(s): {_summarise(exc)}"
            rejected = ValidationRejected(kind.value, items, detail)
            logger.warning(f"[Validator] {kind.value} content rejected | {detail}")
            if self.error_log is not None:
                self.error_log.log_error(
                    rejected, {"kind": kind.value, "content": items, "errors": exc.errors()}
                )
            raise rejected from exc


def _summarise(exc: ValidationError, limit: int = 3) -> str:
    parts = []
    for err in exc.errors()[:limit]:
        loc = ".".join(str(p) for p in err["loc"])
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


def validate_items(items: Any, kind: GenerationKind) -> list[StudyItem]:
    return ItemValidator().validate(items, kind)

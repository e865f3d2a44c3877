"""
Core Pydantic schemas for the study-material pipeline.

RawDocument is what the file-storage collaborator hands us; QuizItem and
FlashcardItem are what we hand back for persistence.  Field names of the
generated items follow the JSON shape the model is prompted with
(``correctAnswer`` is exposed as ``correct_answer`` in Python).
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import PurePath
from typing import Annotated, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

MAX_EXPLANATION_CHARS = 500
QUIZ_OPTION_COUNT = 4

NonEmptyStr = Annotated[str, StringConstraints(min_length=1)]


# --- Enumerations ------------------------------------------------------------

class FileType(str, Enum):
    PDF = "pdf"
    DOCX = "docx"
    TXT = "txt"


class GenerationKind(str, Enum):
    QUIZ = "quiz"
    FLASHCARD = "flashcard"


# --- Input --------------------------------------------------------------------

class RawDocument(BaseModel):
    """
    An uploaded lecture file as raw bytes plus its declared type.

    Only lives for the duration of one extraction call.
    """

    data: bytes
    file_type: str                       # "pdf" | "docx" | "txt" (validated at extraction)
    file_name: str = ""
    mime_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    def from_file_name(
        cls, file_name: str, data: bytes, mime_type: Optional[str] = None
    ) -> "RawDocument":
        """Derive the file type from the original file name's extension."""
        suffix = PurePath(file_name).suffix.lstrip(".").lower()
        return cls(data=data, file_type=suffix, file_name=file_name, mime_type=mime_type)


# --- Generated items ------------------------------------------------------------

class QuizItem(BaseModel):
    """
    A multiple-choice question.

    ``correct_answer`` is expected to be one of ``options`` but only its
    non-emptiness is checked; the model may paraphrase the option text.
    ``explanation`` may be left out but not sent as null.
    """

    model_config = ConfigDict(populate_by_name=True)

    question: NonEmptyStr
    options: Annotated[
        list[NonEmptyStr],
        Field(min_length=QUIZ_OPTION_COUNT, max_length=QUIZ_OPTION_COUNT),
    ]
    correct_answer: NonEmptyStr = Field(alias="correctAnswer")
    explanation: Annotated[str, StringConstraints(max_length=MAX_EXPLANATION_CHARS)] = None


class FlashcardItem(BaseModel):
    front: NonEmptyStr
    back: NonEmptyStr


StudyItem = Union[QuizItem, FlashcardItem]


# --- Generation bookkeeping -----------------------------------------------------

@dataclass
class GenerationAttempt:
    """One try of one chunk's prompt, used for backoff and error logging."""

    prompt: str
    attempt: int = 0

    def context(self) -> dict:
        return {"prompt": self.prompt, "attempt": self.attempt}


class GenerationBatchResult(BaseModel):
    """Validated items for one request, in chunk input order."""

    kind: GenerationKind
    items: list[StudyItem] = Field(default_factory=list)
    total_chunks: int = 0
    succeeded_chunks: list[int] = Field(default_factory=list)
    failed_chunks: list[int] = Field(default_factory=list)
    partial: bool = False                # True when a deadline cut the batch short

    def to_records(self) -> list[dict]:
        """Items as plain dicts in the model's JSON shape, ready for storage."""
        return [item.model_dump(by_alias=True, exclude_none=True) for item in self.items]

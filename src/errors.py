"""
Error taxonomy for the study-material pipeline.

Extraction errors and batch exhaustion reach the caller; chunk-level
errors (GenerationFailed, ValidationRejected) are caught by the
orchestrator, logged, and the chunk is skipped.
"""
from __future__ import annotations

from typing import Any


class StudyPipelineError(Exception):
    """Base class for every error raised by the pipeline."""


# --- Extraction ---------------------------------------------------------------

class UnsupportedFormat(StudyPipelineError):
    """Declared file type (or MIME type) is not one we can extract."""

    def __init__(self, file_type: str) -> None:
        super().__init__(f"Unsupported file type: {file_type!r}")
        self.file_type = file_type


class DocumentTooLarge(StudyPipelineError):
    def __init__(self, name: str, size: int, limit: int) -> None:
        super().__init__(
            f"File size exceeds {limit // (1024 * 1024)}MB limit: {name} ({size:,} bytes)"
        )
        self.name = name
        self.size = size
        self.limit = limit


class ExtractionFailed(StudyPipelineError):
    """Underlying parser or remote extraction service failed."""


# --- Generation ---------------------------------------------------------------

class GenerationFailed(StudyPipelineError):
    """Model call failed after all retries with no recoverable payload."""

    def __init__(self, message: str, attempts: int = 0) -> None:
        super().__init__(message)
        self.attempts = attempts


class ValidationRejected(StudyPipelineError):
    """Model output for one chunk failed structural validation."""

    def __init__(self, kind: str, content: Any, detail: str) -> None:
        super().__init__(f"Generated {kind} content failed validation: {detail}")
        self.kind = kind
        self.content = content
        self.detail = detail


class NoValidContentGenerated(StudyPipelineError):
    """Every chunk of a batch failed."""

    def __init__(self, kind: str, total_chunks: int) -> None:
        super().__init__(
            f"Failed to generate any valid {kind} items from {total_chunks} chunk(s)"
        )
        self.kind = kind
        self.total_chunks = total_chunks

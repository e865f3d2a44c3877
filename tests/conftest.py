from __future__ import annotations

from typing import Any, Callable

import pytest

from src.generation.generator import StudyMaterialGenerator
from src.generation.retry import RetryController
from src.utils.error_log import ErrorLog
from tests.fakes import FakeChatClient, SleepRecorder


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def error_log(tmp_path) -> ErrorLog:
    return ErrorLog(tmp_path / "error.log")


@pytest.fixture
def make_generator(sleeps, error_log):
    """StudyMaterialGenerator over a FakeChatClient driven by ``handler``."""

    def _make(handler: Callable[[str], Any], max_retries: int = 0) -> StudyMaterialGenerator:
        retry = RetryController(max_retries=max_retries, error_log=error_log, sleep=sleeps)
        return StudyMaterialGenerator(client=FakeChatClient(handler), retry=retry)

    return _make


@pytest.fixture
def real_tokenizer():
    """tiktoken's cl100k_base; skipped when the encoding cannot be loaded."""
    from src.chunking.tokenizer import Tokenizer

    try:
        return Tokenizer()
    except Exception as exc:  # encoding files are fetched on first use
        pytest.skip(f"cl100k_base unavailable: {exc}")

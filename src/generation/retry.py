"""
Retry Controller
-----------------
Wraps one generation call with bounded exponential backoff via tenacity.

  delay(n) = min(base_delay * 2**n, max_delay) * (1 + jitter * U[0, 1))

for the n-th failed attempt (0-based), so the first three waits with the
defaults start at 1s, 2s and 4s and are never more than 10% longer.

When the last attempt fails, the error may still carry the model's
output: Groq-style providers attach a ``failed_generation`` string when
the model emitted JSON the server could not parse.  That fragment is
wrapped as a one-element array and reparsed before giving up, so content
already paid for is not thrown away.
"""
from __future__ import annotations

import asyncio
import random
import time
from typing import Any, Awaitable, Callable, Mapping, Optional

import orjson
from loguru import logger
from tenacity import AsyncRetrying, stop_after_attempt
from tenacity.stop import stop_base
from tenacity.wait import wait_base

from src.errors import GenerationFailed
from src.schemas import GenerationAttempt
from src.utils.error_log import ErrorLog
from src.utils.helpers import truncate_text

MAX_RETRIES = 3
BASE_DELAY = 1.0      # seconds
MAX_DELAY = 10.0      # seconds
JITTER = 0.1


def backoff_delay(
    attempt: int,
    base_delay: float = BASE_DELAY,
    max_delay: float = MAX_DELAY,
    jitter: float = JITTER,
    rand: Callable[[], float] = random.random,
) -> float:
    """Seconds to wait after failed attempt number ``attempt`` (0-based)."""
    capped = min(base_delay * (2 ** attempt), max_delay)
    return capped * (1 + jitter * rand())


class wait_capped_exponential_jitter(wait_base):
    """tenacity wait strategy implementing backoff_delay()."""

    def __init__(
        self,
        base_delay: float = BASE_DELAY,
        max_delay: float = MAX_DELAY,
        jitter: float = JITTER,
        rand: Callable[[], float] = random.random,
    ) -> None:
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.jitter = jitter
        self.rand = rand

    def __call__(self, retry_state) -> float:
        return backoff_delay(
            retry_state.attempt_number - 1,
            self.base_delay,
            self.max_delay,
            self.jitter,
            self.rand,
        )


class stop_at_deadline(stop_base):
    """Stop retrying once ``time.monotonic()`` passes ``deadline``."""

    def __init__(self, deadline: float) -> None:
        self.deadline = deadline

    def __call__(self, retry_state) -> bool:
        return time.monotonic() >= self.deadline


def failed_generation(error: BaseException) -> Optional[str]:
    """The partial model output attached to a provider error, if any."""
    body = getattr(error, "body", None)
    if isinstance(body, Mapping):
        payload = body.get("failed_generation")
        if payload is None and isinstance(body.get("error"), Mapping):
            payload = body["error"].get("failed_generation")
    else:
        payload = getattr(error, "failed_generation", None)
    if isinstance(payload, str) and payload.strip():
        return payload
    return None


class RetryController:
    """
    Runs ``call(prompt)`` up to ``max_retries + 1`` times.

    Args:
        max_retries: retries after the first attempt (default 3).
        base_delay / max_delay: backoff bounds in seconds.
        jitter:      fractional jitter added on top of each delay.
        error_log:   forensic sink for failed attempts (optional).
        sleep:       awaitable sleep, injectable for tests.
    """

    def __init__(
        self,
        max_retries: int = MAX_RETRIES,
        base_delay: float = BASE_DELAY,
        max_delay: float = MAX_DELAY,
        jitter: float = JITTER,
        error_log: ErrorLog | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rand: Callable[[], float] = random.random,
    ) -> None:
        self.max_retries = max_retries
        self.wait = wait_capped_exponential_jitter(base_delay, max_delay, jitter, rand)
        self.error_log = error_log
        self._sleep = sleep

    async def invoke(
        self,
        call: Callable[[str], Awaitable[Any]],
        prompt: str,
        deadline: Optional[float] = None,
    ) -> Any:
        """
        Return the call's result, or the recovered failed-generation payload.

        Raises:
            GenerationFailed: all attempts failed and nothing was recoverable.
        """
        stop = stop_after_attempt(self.max_retries + 1)
        if deadline is not None:
            stop = stop | stop_at_deadline(deadline)

        attempts = 0
        try:
            async for attempt in AsyncRetrying(
                stop=stop, wait=self.wait, sleep=self._sleep, reraise=True
            ):
                with attempt:
                    record = GenerationAttempt(prompt=prompt, attempt=attempts)
                    attempts += 1
                    try:
                        result = await call(prompt)
                    except Exception as exc:
                        self._report_failure(record, exc)
                        raise
                    logger.debug(
                        f"[Retry] attempt {record.attempt} succeeded | "
                        f"prompt={truncate_text(prompt, 80)!r}"
                    )
            return result
        except Exception as exc:
            return self._recover(exc, prompt, attempts)

    # --- Internals ----------------------------------------------------------------

    def _report_failure(self, record: GenerationAttempt, exc: Exception) -> None:
        logger.warning(
            f"[Retry] attempt {record.attempt}/{self.max_retries} failed: "
            f"{type(exc).__name__}: {truncate_text(str(exc), 200)} | "
            f"prompt={truncate_text(record.prompt, 80)!r}"
        )
        if self.error_log is not None:
            self.error_log.log_error(exc, record.context())

    def _recover(self, exc: Exception, prompt: str, attempts: int) -> Any:
        payload = failed_generation(exc)
        if payload is None:
            logger.error(f"[Retry] giving up after {attempts} attempt(s): {exc}")
            raise GenerationFailed(
                f"Generation failed after {attempts} attempt(s): {exc}", attempts
            ) from exc

        try:
            recovered = orjson.loads(f"[{payload}]")
        except orjson.JSONDecodeError as parse_exc:
            logger.error(f"[Retry] failed_generation payload is not valid JSON: {parse_exc}")
            if self.error_log is not None:
                self.error_log.log_error(
                    parse_exc, {"prompt": prompt, "failed_generation": payload}
                )
            raise GenerationFailed(
                "Failed to parse failed generation data", attempts
            ) from parse_exc

        logger.warning(
            f"[Retry] recovered failed_generation payload after {attempts} attempt(s)"
        )
        return recovered

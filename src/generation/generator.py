"""
Study Material Generator
-------------------------
Turns one text chunk into validated quiz questions or flashcards:

    build_prompt -> RetryController(chat completion + JSON parse)
                 -> normalize_result -> ItemValidator

Talks to any OpenAI-compatible chat endpoint; the default is Groq's, as
used for lecture content.  Requests strict JSON-object output.
"""
from __future__ import annotations

from typing import Any, Optional

import orjson
from langsmith import traceable
from loguru import logger

from src.generation.normalizer import normalize_result
from src.generation.prompts import SYSTEM_PROMPT, build_prompt
from src.generation.retry import RetryController
from src.schemas import GenerationKind, StudyItem
from src.validation.validator import ItemValidator

DEFAULT_MODEL = "llama-3.3-70b-versatile"
DEFAULT_BASE_URL = "https://api.groq.com/openai/v1"


class StudyMaterialGenerator:
    """
    Per-chunk generation against an OpenAI-compatible chat model.

    Pass ``client`` to reuse an existing AsyncOpenAI instance (or a fake).
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_MODEL,
        base_url: Optional[str] = DEFAULT_BASE_URL,
        temperature: float = 0.3,
        retry: RetryController | None = None,
        validator: ItemValidator | None = None,
        client: Any = None,
    ) -> None:
        if client is None:
            from openai import AsyncOpenAI  # lazy import keeps import graph clean
            client = AsyncOpenAI(api_key=api_key, base_url=base_url)
        self.model = model
        self.temperature = temperature
        self.retry = retry or RetryController()
        self.validator = validator or ItemValidator(self.retry.error_log)
        self._client = client
        self.prompt_tokens: int = 0
        self.completion_tokens: int = 0

    @traceable(name="generate_study_items", run_type="chain")
    async def generate_for_chunk(
        self,
        chunk: str,
        kind: GenerationKind,
        deadline: Optional[float] = None,
    ) -> list[StudyItem]:
        """
        Raises:
            GenerationFailed:   model call failed after retries.
            ValidationRejected: output did not match the item schema.
        """
        kind = GenerationKind(kind)
        prompt = build_prompt(chunk, kind)
        raw = await self.retry.invoke(self._complete, prompt, deadline=deadline)
        items = normalize_result(raw)
        logger.debug(f"[Generator] {kind.value} | {len(items)} raw item(s) after normalisation")
        return self.validator.validate(items, kind)

    async def _complete(self, prompt: str) -> Any:
        """One chat completion; returns the parsed JSON body."""
        response = await self._client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            response_format={"type": "json_object"},
            temperature=self.temperature,
        )

        usage = getattr(response, "usage", None)
        if usage is not None:
            self.prompt_tokens += usage.prompt_tokens or 0
            self.completion_tokens += usage.completion_tokens or 0

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise ValueError("No content generated")
        return orjson.loads(content)

    def usage_summary(self) -> dict:
        return {
            "model": self.model,
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.prompt_tokens + self.completion_tokens,
        }

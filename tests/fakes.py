"""Test doubles for the chat-completion client and provider errors."""
from __future__ import annotations

import asyncio
import json
from types import SimpleNamespace
from typing import Any, Callable


class FakeAPIError(Exception):
    """Mimics openai.APIStatusError: carries the decoded error body."""

    def __init__(self, message: str, body: Any = None) -> None:
        super().__init__(message)
        self.body = body


def completion(content: str | None) -> SimpleNamespace:
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(prompt_tokens=10, completion_tokens=5),
    )


class FakeChatClient:
    """
    Quacks like AsyncOpenAI.chat.completions.

    ``handler(user_prompt)`` returns a JSON-able value, a raw string, or
    raises; it may be async.
    """

    def __init__(self, handler: Callable[[str], Any]) -> None:
        self.handler = handler
        self.calls: list[dict] = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    async def _create(self, **kwargs) -> SimpleNamespace:
        self.calls.append(kwargs)
        prompt = kwargs["messages"][-1]["content"]
        value = self.handler(prompt)
        if asyncio.iscoroutine(value):
            value = await value
        if value is None or isinstance(value, str):
            return completion(value)
        return completion(json.dumps(value))


class SleepRecorder:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def quiz_item(n: int, **overrides) -> dict:
    item = {
        "question": f"Question {n}?",
        "options": [f"A{n}", f"B{n}", f"C{n}", f"D{n}"],
        "correctAnswer": f"A{n}",
        "explanation": f"Because {n}.",
    }
    item.update(overrides)
    return item


class ByteEncoding:
    """
    Byte-level stand-in for a tiktoken Encoding: one token per UTF-8 byte,
    so multi-byte characters are always split across tokens.
    """

    def encode(self, text: str, disallowed_special=()) -> list[int]:
        return list(text.encode("utf-8"))

    def decode(self, tokens: list[int], errors: str = "replace") -> str:
        return bytes(tokens).decode("utf-8", errors=errors)

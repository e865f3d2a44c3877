"""Thin tiktoken wrapper used to measure and materialise chunk boundaries."""
from __future__ import annotations

from typing import Any

import tiktoken

ENCODING_NAME = "cl100k_base"


class Tokenizer:
    """
    BPE encode/decode with the cl100k_base encoder (GPT-3.5/4 family).

    ``encoding`` accepts an already-built encoder with the same
    encode/decode interface instead of loading one by name.
    """

    def __init__(self, encoding_name: str = ENCODING_NAME, encoding: Any = None) -> None:
        self.encoding_name = encoding_name
        self._enc = encoding if encoding is not None else tiktoken.get_encoding(encoding_name)

    def encode(self, text: str) -> list[int]:
        return self._enc.encode(text, disallowed_special=())

    def decode(self, tokens: list[int]) -> str:
        return self._enc.decode(tokens, errors="replace")

    def count(self, text: str) -> int:
        return len(self.encode(text))

    def token_index_for_char(self, tokens: list[int], char_pos: int) -> int:
        """
        Number of leading tokens needed to cover the first ``char_pos``
        characters of ``decode(tokens)``.

        The returned prefix always decodes to at least ``char_pos``
        characters, and tokens that only complete its last character are
        included with it.  Prefix lengths
        are measured by decoding the prefix itself, so bytes of a character
        split across tokens (including stray continuation bytes at the start
        of the buffer, decoded as U+FFFD) count exactly as ``decode`` does.
        """
        lo, hi = 0, len(tokens)
        while lo < hi:
            mid = (lo + hi) // 2
            if len(self.decode(tokens[:mid])) < char_pos:
                lo = mid + 1
            else:
                hi = mid
        # Take the rest of a character whose leading bytes end the prefix.
        length = len(self.decode(tokens[:lo]))
        while lo < len(tokens) and len(self.decode(tokens[: lo + 1])) == length:
            lo += 1
        return lo


_DEFAULT: Tokenizer | None = None


def default_tokenizer() -> Tokenizer:
    """Process-wide shared tokenizer (tiktoken encoders are immutable)."""
    global _DEFAULT
    if _DEFAULT is None:
        _DEFAULT = Tokenizer()
    return _DEFAULT


def count_tokens(text: str) -> int:
    return default_tokenizer().count(text)

"""
Token-Aware Chunker
--------------------
Splits extracted lecture text into chunks that fit the generation prompt's
token budget.

The text is tokenized once and tokens are accumulated into a buffer.  When
the buffer holds ``max_tokens`` tokens it is decoded and a break point is
chosen:

  1. after the last "." if it sits in the trailing 30% of the buffer text
  2. else after the last newline, by the same rule
  3. else the full buffer (hard cut)

The character break point is mapped back to a token count, the prefix is
emitted as one chunk and the remaining tokens seed the next buffer, so the
chunks tile the tokenization exactly (no token dropped or repeated).
"""
from __future__ import annotations

from loguru import logger

from src.chunking.schemas import TextChunk
from src.chunking.tokenizer import Tokenizer, default_tokenizer


# ── Constants ─────────────────────────────────────────────────────────────────

MAX_TOKENS = 1800            # Default chunk budget for one generation prompt
BREAK_WINDOW = 0.7           # Break candidates must lie beyond 70% of the buffer


def find_break_point(text: str, window: float = BREAK_WINDOW) -> int:
    """
    Character offset at which to end a chunk decoded as ``text``.

    Returns the position just past the chosen "." or newline, or
    ``len(text)`` for a hard cut.
    """
    threshold = len(text) * window
    last_period = text.rfind(".")
    if last_period > threshold:
        return last_period + 1
    last_newline = text.rfind("\n")
    if last_newline > threshold:
        return last_newline + 1
    return len(text)


# ── Main Chunker ──────────────────────────────────────────────────────────────

class TokenChunker:
    """
    Splits text into ordered TextChunks of at most ``max_tokens`` tokens.

    Usage:
        chunker = TokenChunker(max_tokens=1800)
        chunks = chunker.split(text)
    """

    def __init__(
        self,
        max_tokens: int = MAX_TOKENS,
        tokenizer: Tokenizer | None = None,
        break_window: float = BREAK_WINDOW,
    ) -> None:
        if max_tokens < 1:
            raise ValueError(f"max_tokens must be positive, got {max_tokens}")
        self.max_tokens = max_tokens
        self.tokenizer = tokenizer or default_tokenizer()
        self.break_window = break_window

    def split(self, text: str) -> list[TextChunk]:
        tokens = self.tokenizer.encode(text)
        chunks: list[TextChunk] = []
        buffer: list[int] = []
        buffer_start = 0

        for token in tokens:
            if len(buffer) >= self.max_tokens:
                cut = self._break_index(buffer)
                self._emit(chunks, buffer[:cut], buffer_start)
                buffer = buffer[cut:]
                buffer_start += cut
            buffer.append(token)

        if buffer:
            self._emit(chunks, buffer, buffer_start)

        logger.debug(
            f"[Chunker] {len(tokens)} tokens | max={self.max_tokens} "
            f"-> {len(chunks)} chunk(s)"
        )
        return chunks

    def _break_index(self, buffer: list[int]) -> int:
        """Token count of the buffer prefix that ends at the chosen break."""
        text = self.tokenizer.decode(buffer)
        char_pos = find_break_point(text, self.break_window)
        if char_pos >= len(text):
            return len(buffer)
        cut = self.tokenizer.token_index_for_char(buffer, char_pos)
        return max(1, min(cut, len(buffer)))

    def _emit(self, chunks: list[TextChunk], tokens: list[int], start: int) -> None:
        text = self.tokenizer.decode(tokens).strip()
        if not text:
            return
        chunks.append(
            TextChunk(
                chunk_index=len(chunks),
                text=text,
                start_token=start,
                token_count=len(tokens),
            )
        )


def split_text_into_chunks(
    text: str, max_tokens: int = MAX_TOKENS, tokenizer: Tokenizer | None = None
) -> list[TextChunk]:
    """Functional shorthand for ``TokenChunker(max_tokens, tokenizer).split(text)``."""
    return TokenChunker(max_tokens=max_tokens, tokenizer=tokenizer).split(text)

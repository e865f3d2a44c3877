"""
Chunk schema - the unit of work sent to the generative model.

Chunks are produced fresh for every extraction request and never outlive it.
"""
from __future__ import annotations

from pydantic import BaseModel


class TextChunk(BaseModel):
    """
    A bounded slice of a document's tokenization.

    ``start_token`` and ``token_count`` locate the slice in the token
    stream of the source text, so consecutive chunks tile it exactly.
    """

    chunk_index: int                     # Zero-based position within the document
    text: str                            # Decoded slice, trimmed of surrounding whitespace
    start_token: int = 0
    token_count: int = 0

    @property
    def end_token(self) -> int:
        return self.start_token + self.token_count

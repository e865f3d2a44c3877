"""
Study Material Pipeline
------------------------
Composes the whole flow for one request:

    RawDocuments (bytes + type, from the file-storage collaborator)
        |
        v
    TextExtractor  (check MIME/size, extract, join with blank lines)
        |
        v
    TokenChunker   (<= max_tokens per chunk, sentence/paragraph breaks)
        |
        v
    GenerationOrchestrator  (retry -> normalise -> validate, per chunk)
        |
        v
    GenerationBatchResult   (handed back to the caller for persistence)
"""
from __future__ import annotations

import os
import time
from pathlib import Path
from typing import Optional, Sequence

from loguru import logger

from src.chunking.chunker import TokenChunker
from src.chunking.schemas import TextChunk
from src.config import PipelineConfig, resolve_api_key
from src.extraction.extractor import RemoteExtractor, TextExtractor
from src.generation.generator import StudyMaterialGenerator
from src.generation.orchestrator import ChunkLike, GenerationOrchestrator
from src.generation.retry import RetryController
from src.schemas import GenerationBatchResult, GenerationKind, RawDocument
from src.utils.error_log import ErrorLog


def load_documents(paths: Sequence[str | Path]) -> list[RawDocument]:
    """Read local files into RawDocuments, typing them by extension."""
    return [
        RawDocument.from_file_name(Path(p).name, Path(p).read_bytes())
        for p in paths
    ]


class StudyPipeline:
    """
    Extraction, chunking and generation wired from one PipelineConfig.

    Pass ``generator`` to bypass the default OpenAI-compatible client.
    """

    def __init__(
        self,
        config: PipelineConfig | None = None,
        api_key: Optional[str] = None,
        generator: StudyMaterialGenerator | None = None,
    ) -> None:
        self.config = config or PipelineConfig()
        cfg = self.config
        self.error_log = ErrorLog(cfg.logging.error_log)

        remote = None
        if cfg.extraction.remote_endpoint:
            remote = RemoteExtractor(
                cfg.extraction.remote_endpoint,
                api_key=os.getenv(cfg.extraction.remote_api_key_env),
                timeout=cfg.extraction.remote_timeout,
            )
        self.extractor = TextExtractor(remote=remote, max_file_size=cfg.extraction.max_file_size)
        self.chunker = TokenChunker(max_tokens=cfg.chunking.max_tokens)

        self._api_key = api_key
        self._generator = generator
        self._orchestrator: GenerationOrchestrator | None = None

    @property
    def orchestrator(self) -> GenerationOrchestrator:
        """Built on first use so extraction alone needs no model credential."""
        if self._orchestrator is None:
            self._orchestrator = GenerationOrchestrator(
                self._generator or self._build_generator(),
                max_concurrency=self.config.generation.max_concurrency,
                error_log=self.error_log,
            )
        return self._orchestrator

    def _build_generator(self) -> StudyMaterialGenerator:
        cfg = self.config
        retry = RetryController(
            max_retries=cfg.retry.max_retries,
            base_delay=cfg.retry.base_delay,
            max_delay=cfg.retry.max_delay,
            jitter=cfg.retry.jitter,
            error_log=self.error_log,
        )
        return StudyMaterialGenerator(
            api_key=resolve_api_key(self._api_key),
            model=cfg.generation.model,
            base_url=cfg.generation.base_url,
            temperature=cfg.generation.temperature,
            retry=retry,
        )

    def prepare(self, documents: Sequence[RawDocument]) -> list[TextChunk]:
        """Extract and chunk; extraction errors propagate to the caller."""
        text = self.extractor.extract_documents(list(documents))
        chunks = self.chunker.split(text)
        logger.info(
            f"[Pipeline] {len(documents)} document(s) -> {len(text):,} chars "
            f"-> {len(chunks)} chunk(s)"
        )
        return chunks

    async def generate(
        self, chunks: Sequence[ChunkLike], kind: GenerationKind
    ) -> GenerationBatchResult:
        return await self.orchestrator.generate(
            chunks, kind, timeout=self.config.generation.timeout
        )

    async def run(
        self, documents: Sequence[RawDocument], kind: GenerationKind
    ) -> GenerationBatchResult:
        start = time.perf_counter()
        chunks = self.prepare(documents)
        result = await self.generate(chunks, kind)
        logger.info(
            f"[Pipeline] {GenerationKind(kind).value} | {len(result.items)} item(s) "
            f"in {time.perf_counter() - start:.1f}s"
        )
        return result

"""
Generation Orchestrator
------------------------
Fans a batch of chunks out to the StudyMaterialGenerator and merges the
validated items.

  - each chunk is independent: a failed or rejected chunk is logged and
    skipped, it never aborts the batch
  - at most ``max_concurrency`` chunks are in flight (default 1, i.e.
    sequential); retry sleeps are asyncio sleeps so they never block
    other chunks
  - items are merged once, after all workers finish, in chunk input order
  - an optional timeout stops new retries, cancels unfinished chunks and
    returns what completed as a partial batch
  - a batch with no valid items raises NoValidContentGenerated
"""
from __future__ import annotations

import asyncio
import time
from typing import Optional, Sequence, Union

from loguru import logger

from src.chunking.schemas import TextChunk
from src.errors import GenerationFailed, NoValidContentGenerated, ValidationRejected
from src.generation.generator import StudyMaterialGenerator
from src.schemas import GenerationBatchResult, GenerationKind, StudyItem
from src.utils.error_log import ErrorLog

ChunkLike = Union[TextChunk, str]


class GenerationOrchestrator:
    def __init__(
        self,
        generator: StudyMaterialGenerator,
        max_concurrency: int = 1,
        error_log: ErrorLog | None = None,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {max_concurrency}")
        self.generator = generator
        self.max_concurrency = max_concurrency
        self.error_log = error_log

    async def generate(
        self,
        chunks: Sequence[ChunkLike],
        kind: GenerationKind,
        timeout: Optional[float] = None,
    ) -> GenerationBatchResult:
        """
        Generate items for every chunk and aggregate them in input order.

        Raises:
            NoValidContentGenerated: no chunk produced valid items.
        """
        kind = GenerationKind(kind)
        texts = [c.text if isinstance(c, TextChunk) else str(c) for c in chunks]
        deadline = time.monotonic() + timeout if timeout is not None else None
        semaphore = asyncio.Semaphore(self.max_concurrency)

        logger.info(
            f"[Orchestrator] {kind.value} | {len(texts)} chunk(s) | "
            f"concurrency={self.max_concurrency} | timeout={timeout}"
        )

        async def worker(index: int, text: str) -> Optional[list[StudyItem]]:
            async with semaphore:
                return await self._run_chunk(index, text, kind, deadline)

        tasks = [asyncio.create_task(worker(i, t)) for i, t in enumerate(texts)]
        partial = False
        if tasks:
            _done, pending = await asyncio.wait(tasks, timeout=timeout)
            if pending:
                partial = True
                logger.warning(
                    f"[Orchestrator] timeout after {timeout}s | "
                    f"cancelling {len(pending)} unfinished chunk(s)"
                )
                for task in pending:
                    task.cancel()
                await asyncio.gather(*pending, return_exceptions=True)

        result = GenerationBatchResult(kind=kind, total_chunks=len(texts), partial=partial)
        for index, task in enumerate(tasks):
            items = None if task.cancelled() else task.result()
            if items is None:
                result.failed_chunks.append(index)
                continue
            result.items.extend(items)
            result.succeeded_chunks.append(index)

        logger.info(
            f"[Orchestrator] Done | {len(result.items)} item(s) | "
            f"ok={len(result.succeeded_chunks)} failed={len(result.failed_chunks)}"
            f"{' | PARTIAL' if partial else ''}"
        )

        if not result.items:
            raise NoValidContentGenerated(kind.value, len(texts))
        return result

    def generate_sync(
        self,
        chunks: Sequence[ChunkLike],
        kind: GenerationKind,
        timeout: Optional[float] = None,
    ) -> GenerationBatchResult:
        """Blocking wrapper around generate() for non-async callers."""
        return asyncio.run(self.generate(chunks, kind, timeout=timeout))

    async def _run_chunk(
        self,
        index: int,
        text: str,
        kind: GenerationKind,
        deadline: Optional[float],
    ) -> Optional[list[StudyItem]]:
        """Items for one chunk, or None if it failed (already logged)."""
        try:
            items = await self.generator.generate_for_chunk(text, kind, deadline=deadline)
        except (GenerationFailed, ValidationRejected) as exc:
            # Already in the error log from the retry controller or validator.
            logger.error(f"[Orchestrator] chunk {index} skipped: {exc}")
            return None
        except Exception as exc:
            logger.exception(f"[Orchestrator] chunk {index} skipped on unexpected error: {exc}")
            self._log(exc, index, kind)
            return None

        logger.debug(f"[Orchestrator] chunk {index} -> {len(items)} item(s)")
        return items

    def _log(self, exc: Exception, index: int, kind: GenerationKind) -> None:
        if self.error_log is not None:
            self.error_log.log_error(exc, {"chunk_index": index, "kind": kind.value})

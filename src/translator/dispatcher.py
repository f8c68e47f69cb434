"""Batched, concurrent dispatch of translation chunks."""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Sequence

from translator.schemas import TranslationChunk, TranslationResult

logger = logging.getLogger(__name__)

TranslateChunkFunction = Callable[[TranslationChunk], Awaitable[TranslationResult]]
BatchCompleteCallback = Callable[[List[TranslationResult]], None]


def make_batches(
    chunks: Sequence[TranslationChunk], batch_size: int
) -> List[List[TranslationChunk]]:
    """Group chunks into consecutive batches of at most ``batch_size``."""
    if batch_size <= 0:
        raise ValueError("batch_size must be greater than zero")
    return [list(chunks[i : i + batch_size]) for i in range(0, len(chunks), batch_size)]


class BatchDispatcher:
    """
    Translates chunks batch by batch.

    All chunks of a batch are translated concurrently; the next batch starts
    only after every call of the current one has settled, and after a fixed
    pause. This keeps the request rate under the backend's rate limit.

    Args:
        batch_size: Chunks translated concurrently per batch
        batch_delay: Seconds to wait after each batch except the last
        sleep: Coroutine used for the pause, injectable for tests
    """

    def __init__(
        self,
        batch_size: int = 3,
        batch_delay: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if batch_size <= 0:
            raise ValueError("batch_size must be greater than zero")
        if batch_delay < 0:
            raise ValueError("batch_delay must not be negative")
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self._sleep = sleep

    async def _run_batch(
        self,
        batch: List[TranslationChunk],
        translate_chunk: TranslateChunkFunction,
    ) -> List[TranslationResult]:
        outcomes = await asyncio.gather(
            *(translate_chunk(chunk) for chunk in batch), return_exceptions=True
        )

        failures = [
            (chunk, outcome)
            for chunk, outcome in zip(batch, outcomes)
            if isinstance(outcome, BaseException)
        ]
        if failures:
            failed = ", ".join(f"chunk {chunk.index + 1}" for chunk, _ in failures)
            logger.error(
                f"❌ Translation failed for {len(failures)} chunk(s): {failed}. "
                f"First error: {failures[0][1]}"
            )
            raise failures[0][1]

        results: List[TranslationResult] = list(outcomes)
        for chunk, result in zip(batch, results):
            if result.index != chunk.index:
                raise ValueError(
                    f"Result index {result.index} does not match chunk index {chunk.index}"
                )
        return sorted(results, key=lambda result: result.index)

    async def dispatch(
        self,
        chunks: Sequence[TranslationChunk],
        translate_chunk: TranslateChunkFunction,
        on_batch_complete: Optional[BatchCompleteCallback] = None,
    ) -> List[TranslationResult]:
        """
        Translate every chunk, one batch at a time.

        Args:
            chunks: Chunks in index order
            translate_chunk: Coroutine translating one chunk
            on_batch_complete: Called with each batch's results, sorted by index

        Returns:
            All results sorted by index

        Raises:
            Exception: The first failure of the first batch that had one;
                later batches are never started
        """
        batches = make_batches(chunks, self.batch_size)
        results: List[TranslationResult] = []

        for batch_number, batch in enumerate(batches):
            first, last = batch[0].index + 1, batch[-1].index + 1
            logger.info(
                f"🔄 Translating batch {batch_number + 1}/{len(batches)} "
                f"(chunks {first}-{last} of {len(chunks)})"
            )

            batch_results = await self._run_batch(batch, translate_chunk)
            results.extend(batch_results)

            logger.info(f"✅ Completed batch {batch_number + 1}/{len(batches)}")
            if on_batch_complete is not None:
                on_batch_complete(batch_results)

            if batch_number < len(batches) - 1 and self.batch_delay > 0:
                await self._sleep(self.batch_delay)

        return results

"""Chunked, batched translation of long blog content."""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from common.utils import MathUtils
from translator.chunker import split_text_into_chunks
from translator.dispatcher import BatchDispatcher
from translator.reassembler import ResultReassembler
from translator.schemas import (
    PipelineOptions,
    PipelineState,
    ProgressCallback,
    TranslationChunk,
    TranslationResult,
)
from translator.translation_service import TranslationClient, build_translation_prompt

logger = logging.getLogger(__name__)


class PipelineRun:
    """
    A single pipeline invocation.

    Owns its chunks, its reassembler and its state, so concurrent runs never
    share anything. A failed run ends in ``FAILED``; callers start a new run to
    try again.
    """

    def __init__(
        self,
        client: TranslationClient,
        source_language: str,
        target_language: str,
        options: PipelineOptions,
        on_progress: Optional[ProgressCallback] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.client = client
        self.source_language = source_language
        self.target_language = target_language
        self.options = options
        self.on_progress = on_progress
        self.state = PipelineState.IDLE
        self.chunks: List[TranslationChunk] = []
        self.reassembler: Optional[ResultReassembler] = None
        self._dispatcher = BatchDispatcher(
            batch_size=options.batch_size,
            batch_delay=options.batch_delay,
            sleep=sleep,
        )

    def _transition(self, state: PipelineState) -> None:
        logger.debug(f"Pipeline state {self.state.value} -> {state.value}")
        self.state = state

    async def _translate_chunk(self, chunk: TranslationChunk) -> TranslationResult:
        # Whitespace between blocks can end up as a chunk of its own
        if not chunk.source_text.strip():
            logger.debug(f"Chunk {chunk.index} is whitespace only, not sending it")
            return TranslationResult(index=chunk.index, translated_text=chunk.source_text)

        prompt = build_translation_prompt(
            chunk.source_text, self.source_language, self.target_language
        )
        translated = await self.client.request(prompt)
        return TranslationResult(index=chunk.index, translated_text=translated)

    def _handle_batch(self, results: List[TranslationResult]) -> None:
        last_index = len(self.chunks) - 1
        for result in results:
            cleaned = self.reassembler.store(result)
            if self.on_progress is not None:
                self.on_progress(cleaned, result.index == last_index)

        percentage = MathUtils.calculate_percentage(
            self.reassembler.completed, self.reassembler.total
        )
        logger.info(
            f"📈 Translated {self.reassembler.completed}/{self.reassembler.total} "
            f"chunks ({percentage:.0f}%)"
        )

    async def execute(self, full_text: str) -> str:
        """
        Translate ``full_text`` and return the combined translation.

        Raises:
            RuntimeError: If the run was already executed
            TranslationError: If any chunk fails after its retries
        """
        if self.state is not PipelineState.IDLE:
            raise RuntimeError(f"Pipeline run already {self.state.value}")

        self._transition(PipelineState.CHUNKING)
        self.chunks = split_text_into_chunks(full_text, self.options.max_chunk_length)
        if not self.chunks:
            logger.info("Nothing to translate (empty input)")
            self._transition(PipelineState.DONE)
            return ""

        self.reassembler = ResultReassembler(len(self.chunks))
        logger.info(
            f"🚀 Translating {len(self.chunks)} chunk(s) from {self.source_language} "
            f"to {self.target_language} in batches of {self.options.batch_size}"
        )

        self._transition(PipelineState.DISPATCHING)
        try:
            await self._dispatcher.dispatch(
                self.chunks, self._translate_chunk, on_batch_complete=self._handle_batch
            )
        except Exception:
            self._transition(PipelineState.FAILED)
            raise

        self._transition(PipelineState.REASSEMBLING)
        combined = self.reassembler.combine()
        self._transition(PipelineState.DONE)

        logger.info(f"✅ Translation complete ({len(combined)} characters)")
        return combined


class TranslationPipeline:
    """
    Reusable entry point for translating long content.

    Holds only configuration; each call to :meth:`translate` runs in its own
    :class:`PipelineRun`.
    """

    def __init__(
        self,
        client: TranslationClient,
        options: Optional[PipelineOptions] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.client = client
        self.options = options or PipelineOptions.from_settings()
        self._sleep = sleep

    def new_run(
        self,
        source_language: str,
        target_language: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> PipelineRun:
        return PipelineRun(
            client=self.client,
            source_language=source_language,
            target_language=target_language,
            options=self.options,
            on_progress=on_progress,
            sleep=self._sleep,
        )

    async def translate(
        self,
        full_text: str,
        source_language: str,
        target_language: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> str:
        """
        Translate ``full_text`` from one language name to another.

        Args:
            full_text: Text to translate, usually blog HTML
            source_language: Source language name (e.g., 'Japanese')
            target_language: Target language name (e.g., 'English')
            on_progress: Called once per chunk, in order, with the cleaned
                translation and whether it is the last chunk

        Returns:
            Combined translation, "" for empty or whitespace-only input
        """
        run = self.new_run(source_language, target_language, on_progress)
        return await run.execute(full_text)


async def translate_pipeline(
    full_text: str,
    source_language: str,
    target_language: str,
    on_progress: Optional[ProgressCallback] = None,
    *,
    client: TranslationClient,
    options: Optional[PipelineOptions] = None,
) -> str:
    """Translate ``full_text`` with a one-off :class:`TranslationPipeline`."""
    pipeline = TranslationPipeline(client, options)
    return await pipeline.translate(full_text, source_language, target_language, on_progress)

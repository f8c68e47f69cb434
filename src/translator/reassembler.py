"""Ordered reassembly of translated chunks."""

import logging
from typing import List, Optional

from common.llm_utils import clean_translation_output
from translator.schemas import TranslationResult

logger = logging.getLogger(__name__)


class ResultReassembler:
    """
    Collects translated chunks into index-addressed slots.

    Results may arrive in any order; ``combine`` always joins them in chunk
    order.
    """

    def __init__(self, total: int):
        if total < 0:
            raise ValueError("total must not be negative")
        self._slots: List[Optional[str]] = [None] * total

    @property
    def total(self) -> int:
        return len(self._slots)

    @property
    def completed(self) -> int:
        return sum(1 for slot in self._slots if slot is not None)

    def is_complete(self) -> bool:
        return self.completed == self.total

    def store(self, result: TranslationResult) -> str:
        """
        Clean a translated chunk and put it in its slot.

        Returns:
            The cleaned text that was stored

        Raises:
            IndexError: If the index is outside the expected range
            ValueError: If the slot is already filled
        """
        if not 0 <= result.index < self.total:
            raise IndexError(
                f"Result index {result.index} out of range for {self.total} chunk(s)"
            )
        if self._slots[result.index] is not None:
            raise ValueError(f"Chunk {result.index} was already stored")

        cleaned = clean_translation_output(result.translated_text)
        self._slots[result.index] = cleaned
        return cleaned

    def combine(self) -> str:
        """
        Join all slots in index order with no separator.

        Raises:
            ValueError: If any chunk has no result yet
        """
        missing = [index for index, slot in enumerate(self._slots) if slot is None]
        if missing:
            raise ValueError(f"Missing translated chunk(s): {missing}")

        combined = "".join(self._slots)
        logger.debug(f"Reassembled {self.total} chunk(s) into {len(combined)} characters")
        return combined

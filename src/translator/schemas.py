"""Data structures for the chunked translation pipeline."""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from common.config import settings

# Receives one cleaned translated chunk and whether it is the last chunk overall
ProgressCallback = Callable[[str, bool], None]


@dataclass(frozen=True)
class TranslationChunk:
    """A slice of the source text submitted as one translation request."""

    index: int
    source_text: str

    def __post_init__(self) -> None:
        if self.index < 0:
            raise ValueError("chunk index must be non-negative")


@dataclass(frozen=True)
class TranslationResult:
    """The translated text for the chunk with the same index."""

    index: int
    translated_text: str


class PipelineState(str, Enum):
    """Lifecycle of a single pipeline invocation."""

    IDLE = "idle"
    CHUNKING = "chunking"
    DISPATCHING = "dispatching"
    REASSEMBLING = "reassembling"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class PipelineOptions:
    """Sizing and pacing of a pipeline invocation."""

    max_chunk_length: int = 2000
    batch_size: int = 3
    batch_delay: float = 1.0

    def __post_init__(self) -> None:
        if self.max_chunk_length <= 0:
            raise ValueError("max_chunk_length must be greater than zero")
        if self.batch_size <= 0:
            raise ValueError("batch_size must be greater than zero")
        if self.batch_delay < 0:
            raise ValueError("batch_delay must not be negative")

    @classmethod
    def from_settings(cls, overrides: Optional[dict] = None) -> "PipelineOptions":
        """Build options from the application settings."""
        values = {
            "max_chunk_length": settings.translation_max_chunk_length,
            "batch_size": settings.translation_batch_size,
            "batch_delay": settings.translation_batch_delay,
        }
        values.update(overrides or {})
        return cls(**values)

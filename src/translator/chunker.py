"""Split HTML blog content into chunks aligned to block-level tags."""

import logging
import re
from typing import List

from common.llm_utils import clean_markdown_code_fences
from translator.schemas import TranslationChunk

logger = logging.getLogger(__name__)

DEFAULT_MAX_CHUNK_LENGTH = 2000

# A split may happen right before one of these opening tags...
OPENING_BLOCK_TAG = re.compile(r"<(?:p|div|h[1-6]|br|img|a)(?=[\s/>])", re.IGNORECASE)
# ...or right after one of these closing tags
CLOSING_BLOCK_TAG = re.compile(r"</(?:p|div|h[1-6]|a)\s*>", re.IGNORECASE)


def clean_source_text(text: str) -> str:
    """Strip wrapping code fences and surrounding whitespace from source text."""
    if not text:
        return ""
    return clean_markdown_code_fences(text)


def split_into_segments(text: str) -> List[str]:
    """
    Cut text at every block-tag boundary.

    The segments are the smallest units the chunker may emit; joining them
    gives back ``text``.
    """
    boundaries = {0, len(text)}
    boundaries.update(match.start() for match in OPENING_BLOCK_TAG.finditer(text))
    boundaries.update(match.end() for match in CLOSING_BLOCK_TAG.finditer(text))

    positions = sorted(boundaries)
    return [
        text[start:end]
        for start, end in zip(positions, positions[1:])
        if end > start
    ]


def pack_segments(segments: List[str], max_chunk_length: int) -> List[str]:
    """Greedily pack segments into pieces of at most ``max_chunk_length`` characters."""
    packed: List[str] = []
    current = ""
    for segment in segments:
        if current and len(current) + len(segment) > max_chunk_length:
            packed.append(current)
            current = ""
        # A segment longer than the limit on its own stays whole
        current += segment
    if current:
        packed.append(current)
    return packed


def split_text_into_chunks(
    text: str, max_chunk_length: int = DEFAULT_MAX_CHUNK_LENGTH
) -> List[TranslationChunk]:
    """
    Split source text into ordered translation chunks.

    The text is cleaned first (wrapping code fences, surrounding whitespace).
    Chunks only break before an opening or after a closing block tag, never
    exceed ``max_chunk_length`` unless one indivisible segment does, and
    concatenate back to the cleaned text.

    Args:
        text: Source text, usually blog HTML
        max_chunk_length: Maximum characters per chunk

    Returns:
        List of chunks, empty for empty or whitespace-only input

    Raises:
        ValueError: If max_chunk_length is not positive
    """
    if max_chunk_length <= 0:
        raise ValueError("max_chunk_length must be greater than zero")

    cleaned = clean_source_text(text)
    if not cleaned:
        return []

    segments = split_into_segments(cleaned)
    pieces = pack_segments(segments, max_chunk_length)

    oversized = sum(1 for piece in pieces if len(piece) > max_chunk_length)
    if oversized:
        logger.warning(
            f"⚠️  {oversized} chunk(s) exceed {max_chunk_length} characters "
            f"because a single block could not be split"
        )

    logger.debug(
        f"Split {len(cleaned)} characters into {len(pieces)} chunk(s) "
        f"from {len(segments)} segment(s)"
    )
    return [TranslationChunk(index=i, source_text=piece) for i, piece in enumerate(pieces)]

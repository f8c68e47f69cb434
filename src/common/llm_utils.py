"""Utilities for cleaning text sent to and returned by the language model."""

import logging
import re

logger = logging.getLogger(__name__)

# Label some model replies start with, e.g. "Translation: <p>...</p>"
TRANSLATION_LABEL = "translation:"

_OPENING_FENCE = re.compile(r"^```[\w+-]*[ \t]*\n?")
_CLOSING_FENCE = re.compile(r"\n?[ \t]*```$")


def clean_markdown_code_fences(text: str) -> str:
    """
    Remove wrapping markdown code fences and surrounding whitespace.

    Models often wrap HTML replies in a fenced block like::

        ```html
        <p>...</p>
        ```

    Only a fence at the very start and a fence at the very end are removed;
    fences inside the content are left alone.

    Args:
        text: Raw text

    Returns:
        Text without wrapping fences or surrounding whitespace

    Examples:
        >>> clean_markdown_code_fences('```html\\n<p>A</p>\\n```')
        '<p>A</p>'
        >>> clean_markdown_code_fences('```<p>A</p>```')
        '<p>A</p>'
        >>> clean_markdown_code_fences('<p>A</p>')
        '<p>A</p>'
    """
    cleaned = text.strip()

    if cleaned.startswith("```"):
        cleaned = _OPENING_FENCE.sub("", cleaned, count=1)
        cleaned = _CLOSING_FENCE.sub("", cleaned, count=1)

    return cleaned.strip()


def strip_translation_label(text: str) -> str:
    """
    Remove a leading ``Translation:`` label, matched case-insensitively.

    Examples:
        >>> strip_translation_label('TRANSLATION: <p>Hi</p>')
        '<p>Hi</p>'
        >>> strip_translation_label('<p>Translation: Hi</p>')
        '<p>Translation: Hi</p>'
    """
    if text[: len(TRANSLATION_LABEL)].lower() == TRANSLATION_LABEL:
        return text[len(TRANSLATION_LABEL) :].lstrip()
    return text


def clean_translation_output(text: str) -> str:
    """Clean one translated chunk: fences, whitespace, then the label."""
    return strip_translation_label(clean_markdown_code_fences(text))


def clean_title_output(text: str) -> str:
    """
    Clean a translated title, keeping only the last non-empty line.

    Models sometimes echo the original title on the first line before the
    translation.

    Example:
        >>> clean_title_output('春の日\\nMột ngày mùa xuân')
        'Một ngày mùa xuân'
    """
    cleaned = clean_translation_output(text)
    lines = [line.strip() for line in cleaned.split("\n") if line.strip()]
    if not lines:
        return ""
    if len(lines) > 1:
        logger.debug(f"Title reply had {len(lines)} lines, keeping the last one")
    return lines[-1]

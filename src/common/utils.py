"""Utility functions for common operations across the application."""

import logging
import re
from datetime import date, datetime, timezone
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class MathUtils:
    """Mathematical utility functions."""

    @staticmethod
    def calculate_percentage(completed: int, total: int) -> float:
        """
        Calculate the percentage of completed items out of total items.

        Args:
            completed: Number of completed items
            total: Total number of items

        Returns:
            Percentage as a float between 0 and 100

        Example:
            >>> MathUtils.calculate_percentage(5, 10)
            50.0
        """
        if total <= 0:
            return 0.0
        return (completed / total) * 100


class StringUtils:
    """String manipulation utility functions."""

    @staticmethod
    def truncate_for_logging(
        text: str, max_length: int = 1000, edge_length: int = 500
    ) -> str:
        """
        Truncate text for logging, showing beginning and end.

        Args:
            text: Text to truncate
            max_length: Maximum length before truncation is applied
            edge_length: Number of characters to show from start and end

        Returns:
            Truncated text with ellipsis if needed, or original text if short enough

        Example:
            >>> StringUtils.truncate_for_logging("Hello", max_length=100)
            'Hello'
        """
        if len(text) <= max_length:
            return text
        return f"{text[:edge_length]}...\n...{text[-edge_length:]}"

    @staticmethod
    def remove_all_whitespace(text: Optional[str]) -> str:
        """
        Remove every whitespace character, used to compare Japanese names.

        Example:
            >>> StringUtils.remove_all_whitespace("一ノ瀬 美空")
            '一ノ瀬美空'
        """
        return re.sub(r"\s+", "", text or "")


class DateTimeUtils:
    """Date and time utility functions."""

    @staticmethod
    def get_current_utc_datetime() -> datetime:
        """Get the current UTC datetime."""
        return datetime.now(timezone.utc)

    @staticmethod
    def get_date_string_for_log_file() -> str:
        """
        Get a date string suitable for log file names.

        Returns:
            Date string in YYYYMMDD format
        """
        return datetime.now().strftime("%Y%m%d")

    @staticmethod
    def get_unix_timestamp() -> int:
        """
        Get the current Unix timestamp in whole seconds.

        The blog site takes this as a cache-busting query parameter.
        """
        return int(datetime.now(timezone.utc).timestamp())

    @staticmethod
    def calculate_age(birthday: Optional[str], today: Optional[date] = None) -> Optional[int]:
        """
        Calculate an age in years from a ``YYYY/MM/DD`` or ``YYYY-MM-DD`` birthday.

        Args:
            birthday: Birthday string as published by the member API
            today: Reference date, defaults to the current date

        Returns:
            Age in whole years, or None if the birthday cannot be parsed

        Example:
            >>> DateTimeUtils.calculate_age("2000/05/10", date(2024, 5, 9))
            23
        """
        if not birthday:
            return None
        parts = re.split(r"[/-]", birthday.strip())
        if len(parts) < 3:
            return None
        try:
            year, month, day = (int(part) for part in parts[:3])
        except ValueError:
            return None
        if not year or not month or not day:
            return None

        today = today or date.today()
        age = today.year - year
        if (today.month, today.day) < (month, day):
            age -= 1
        return age


class LanguageUtils:
    """Language code conversion utility functions."""

    # Languages the reader can display; Japanese is the source language of every blog
    ISO_TO_LANGUAGE_NAME: Dict[str, str] = {
        "ja": "Japanese",
        "en": "English",
        "vi": "Vietnamese",
    }

    SOURCE_LANGUAGE = "ja"

    @staticmethod
    def iso_to_language_name(iso_code: str) -> str:
        """
        Convert ISO 639-1 2-letter code to a language name for the translation prompt.

        Args:
            iso_code: ISO 639-1 2-letter code (e.g., 'en', 'vi')

        Returns:
            Language name (e.g., 'English'), or the code itself if not found

        Example:
            >>> LanguageUtils.iso_to_language_name('vi')
            'Vietnamese'
        """
        if not iso_code:
            return iso_code

        normalized = iso_code.lower()
        return LanguageUtils.ISO_TO_LANGUAGE_NAME.get(normalized, iso_code)

    @staticmethod
    def is_translation_target(iso_code: Optional[str]) -> bool:
        """Return True when the code is a supported, non-source language."""
        if not iso_code:
            return False
        normalized = iso_code.lower()
        return (
            normalized in LanguageUtils.ISO_TO_LANGUAGE_NAME
            and normalized != LanguageUtils.SOURCE_LANGUAGE
        )

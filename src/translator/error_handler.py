"""Turn translation errors into localized, user-facing messages."""

import logging
from dataclasses import dataclass
from typing import Dict

from translator.errors import (
    BackendReportedError,
    RateLimitExceededError,
    TranslationError,
    TranslationFailedError,
)

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "en"

MESSAGES: Dict[str, Dict[str, str]] = {
    "en": {
        "rate_limit": "The translation service is busy (rate limit reached). Please try again in a minute.",
        "backend": "Translation error: {message}",
        "failed": "Translation failed: {message}",
        "unexpected": "Translation failed. Please try again later.",
    },
    "vi": {
        "rate_limit": "Dịch vụ dịch đang quá tải (vượt giới hạn yêu cầu). Vui lòng thử lại sau ít phút.",
        "backend": "Lỗi dịch: {message}",
        "failed": "Dịch thất bại: {message}",
        "unexpected": "Lỗi dịch. Vui lòng thử lại sau.",
    },
    "ja": {
        "rate_limit": "翻訳サービスのリクエスト上限に達しました。しばらくしてから再度お試しください。",
        "backend": "翻訳エラー: {message}",
        "failed": "翻訳に失敗しました: {message}",
        "unexpected": "翻訳に失敗しました。しばらくしてから再度お試しください。",
    },
}


@dataclass(frozen=True)
class TranslationErrorReport:
    """What the API sends back for a failed translation."""

    status_code: int
    error_type: str
    message: str


def describe_translation_error(
    error: Exception, language: str = DEFAULT_LANGUAGE
) -> TranslationErrorReport:
    """
    Map a translation error to an HTTP status and a localized message.

    Args:
        error: Exception raised by the pipeline
        language: UI language code ('ja', 'en' or 'vi')

    Returns:
        Report with status code, error type and message
    """
    messages = MESSAGES.get((language or "").lower(), MESSAGES[DEFAULT_LANGUAGE])

    if isinstance(error, RateLimitExceededError):
        logger.warning(f"⚠️  Translation rate limit exceeded: {error}")
        return TranslationErrorReport(429, "rate_limit", messages["rate_limit"])

    if isinstance(error, BackendReportedError):
        logger.error(f"❌ Translation backend reported an error: {error.backend_message}")
        return TranslationErrorReport(
            502, "backend_error", messages["backend"].format(message=error.backend_message)
        )

    if isinstance(error, TranslationFailedError):
        logger.error(f"❌ Translation failed: {error}")
        cause = error.__cause__ or error
        return TranslationErrorReport(
            502, "translation_failed", messages["failed"].format(message=str(cause))
        )

    if isinstance(error, TranslationError):
        logger.error(f"❌ Translation error: {error}")
        return TranslationErrorReport(
            502, "translation_failed", messages["failed"].format(message=str(error))
        )

    logger.error(f"❌ Unexpected error during translation: {error}", exc_info=True)
    return TranslationErrorReport(500, "unexpected", messages["unexpected"])

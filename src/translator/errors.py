"""Exceptions raised by the translation pipeline and its request layer."""

from typing import Optional


class TranslationError(Exception):
    """Base exception for translation failures."""

    is_transient = False


class TransientTranslationError(TranslationError):
    """A request failure that may succeed when retried."""

    is_transient = True


class RateLimitExceededError(TransientTranslationError):
    """The backend rejected the request because of its rate limit (HTTP 429)."""


class TranslationTransportError(TransientTranslationError):
    """Timeout, connection failure or server-side (5xx) error."""


class EmptyTranslationError(TransientTranslationError):
    """The backend reply carried no translated text."""


class BackendReportedError(TranslationError):
    """
    The backend answered with an error message of its own.

    The message is kept verbatim in ``backend_message`` so it can be shown to
    the user behind a localized prefix.
    """

    def __init__(self, backend_message: str, status_code: Optional[int] = None):
        super().__init__(backend_message)
        self.backend_message = backend_message
        self.status_code = status_code


class TranslationFailedError(TranslationError):
    """Generic failure surfaced once a request's retry budget is exhausted."""

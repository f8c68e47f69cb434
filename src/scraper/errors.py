"""Exceptions raised while fetching or parsing blog site pages."""


class ScraperError(Exception):
    """Base exception for blog site failures."""

    is_transient = False


class InvalidResponseError(ScraperError):
    """The site (or proxy) answered with a body that is not what was requested."""

    is_transient = True


class ParseError(ScraperError):
    """A page or API payload could not be parsed."""

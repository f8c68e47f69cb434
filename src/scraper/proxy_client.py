"""Fetch blog site pages through the CORS proxy endpoint."""

import logging
from typing import Mapping, Optional
from urllib.parse import quote, urlencode

import httpx

from common.retry_utils import RetryPolicy, call_with_retry, exponential_backoff
from common.utils import StringUtils
from scraper.errors import InvalidResponseError

logger = logging.getLogger(__name__)

PROXY_REQUEST_TIMEOUT = 15.0

PROXY_REQUEST_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
        "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "ja-JP,ja;q=0.9,en;q=0.8",
}

HTML_MARKERS = ("<!doctype html", "<html")


def default_proxy_retry_policy() -> RetryPolicy:
    """Three attempts, waiting about 2s and then 4s between them."""
    return RetryPolicy(
        max_attempts=3,
        backoff=exponential_backoff(initial_delay=2.0, exponential_base=2, max_delay=30.0),
    )


def create_proxy_url(
    proxy_endpoint: str,
    base_url: str,
    path: str,
    params: Optional[Mapping[str, object]] = None,
) -> str:
    """
    Build the proxy URL for a site path.

    Example:
        >>> create_proxy_url("/api/proxy", "https://example.com", "/list", {"page": 1})
        '/api/proxy?url=https%3A%2F%2Fexample.com%2Flist%3Fpage%3D1'
    """
    query = urlencode(params or {})
    target = f"{base_url}{path}" + (f"?{query}" if query else "")
    return f"{proxy_endpoint}?url={quote(target, safe='')}"


def validate_proxy_body(body: str, expect_html: bool = True) -> str:
    """
    Reject bodies that cannot be the requested page.

    Empty bodies are always rejected; when HTML is expected the body must
    contain a doctype or an ``<html`` tag.

    Raises:
        InvalidResponseError: If the body fails validation
    """
    if not body or not body.strip():
        raise InvalidResponseError("Proxy returned an empty body")
    if expect_html:
        head = body[:2048].lower()
        if not any(marker in head for marker in HTML_MARKERS):
            raise InvalidResponseError(
                f"Proxy returned a non-HTML body: "
                f"{StringUtils.truncate_for_logging(body, 200, 100)!r}"
            )
    return body


async def fetch_with_proxy(
    client: httpx.AsyncClient,
    proxy_endpoint: str,
    base_url: str,
    path: str,
    params: Optional[Mapping[str, object]] = None,
    expect_html: bool = True,
    retry_policy: Optional[RetryPolicy] = None,
) -> str:
    """
    GET a site path through the proxy, retrying transient failures.

    Args:
        client: Shared HTTP client
        proxy_endpoint: URL of the proxy endpoint
        base_url: Site root the proxy fetches from
        path: Site path, e.g. ``/s/n46/api/list/member``
        params: Query parameters for the site path
        expect_html: Require an HTML document in the reply
        retry_policy: Overrides the default exponential policy

    Returns:
        Reply body as text

    Raises:
        httpx.HTTPStatusError: Non-2xx reply after the last attempt
        InvalidResponseError: Invalid body after the last attempt
    """
    proxy_url = create_proxy_url(proxy_endpoint, base_url, path, params)
    policy = retry_policy or default_proxy_retry_policy()

    async def _fetch() -> str:
        response = await client.get(
            proxy_url, headers=PROXY_REQUEST_HEADERS, timeout=PROXY_REQUEST_TIMEOUT
        )
        response.raise_for_status()
        return validate_proxy_body(response.text, expect_html=expect_html)

    logger.debug(f"Fetching {path} through proxy {proxy_endpoint}")
    return await call_with_retry(_fetch, policy=policy, operation=f"proxy fetch {path}")

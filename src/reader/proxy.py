"""Pass-through proxy to the blog site for browsers blocked by CORS."""

import logging
from typing import Dict, List, Optional
from urllib.parse import unquote

import httpx

from scraper.proxy_client import PROXY_REQUEST_HEADERS

logger = logging.getLogger(__name__)

CORS_HEADERS: Dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

UPSTREAM_HEADERS: Dict[str, str] = {
    **PROXY_REQUEST_HEADERS,
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
}


class ProxyError(Exception):
    """A proxy request that ends in an error response."""

    def __init__(self, status_code: int, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.detail = detail

    def to_content(self) -> Dict[str, str]:
        content = {"error": self.message}
        if self.detail:
            content["message"] = self.detail
        return content


def validate_target_url(url: Optional[str], allowed_prefixes: List[str]) -> str:
    """
    Return the target URL if the proxy may fetch it.

    Raises:
        ProxyError: 400 if the URL is missing or outside the allowed prefixes
    """
    if not url or not url.strip():
        raise ProxyError(400, "URL parameter is required")

    target = url.strip()
    # Tolerate clients that encode the parameter twice
    if not target.startswith(("http://", "https://")):
        target = unquote(target)

    if not any(target.startswith(prefix) for prefix in allowed_prefixes):
        logger.warning(f"⚠️  Rejected proxy target outside allowed domains: {target}")
        raise ProxyError(400, "Invalid URL domain")
    return target


async def fetch_target(client: httpx.AsyncClient, target_url: str, timeout: float) -> str:
    """
    Fetch an allowed target URL and return its body.

    Raises:
        ProxyError: With the upstream status for non-2xx replies, or 500 on
            transport failures
    """
    try:
        response = await client.get(target_url, headers=UPSTREAM_HEADERS, timeout=timeout)
    except httpx.HTTPError as e:
        logger.error(f"❌ Proxy request to {target_url} failed: {e}")
        raise ProxyError(500, "Internal server error", str(e) or type(e).__name__) from e

    if not response.is_success:
        logger.warning(f"⚠️  Target server returned {response.status_code} for {target_url}")
        raise ProxyError(
            response.status_code, f"Target server returned {response.status_code}"
        )

    logger.debug(f"Proxied {target_url} ({len(response.text)} characters)")
    return response.text


def success_headers(cache_max_age: int) -> Dict[str, str]:
    return {**CORS_HEADERS, "Cache-Control": f"public, max-age={cache_max_age}"}

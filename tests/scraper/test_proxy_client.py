"""Tests for fetching blog site pages through the proxy endpoint."""

from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from scraper.errors import InvalidResponseError
from scraper.proxy_client import (
    PROXY_REQUEST_HEADERS,
    create_proxy_url,
    default_proxy_retry_policy,
    fetch_with_proxy,
    validate_proxy_body,
)

PROXY_ENDPOINT = "http://localhost:8000/api/proxy"
HTML_PAGE = "<!DOCTYPE html><html><body><p>ok</p></body></html>"


def target_of(request: httpx.Request) -> str:
    return parse_qs(urlsplit(str(request.url)).query)["url"][0]


class TestCreateProxyUrl:
    def test_encodes_target_with_params(self, base_url):
        url = create_proxy_url(PROXY_ENDPOINT, base_url, "/s/n46/diary/MEMBER/list", {"ct": "55401", "page": 2})

        assert url.startswith(f"{PROXY_ENDPOINT}?url=https%3A%2F%2Fwww.nogizaka46.com")
        assert parse_qs(urlsplit(url).query)["url"] == [
            f"{base_url}/s/n46/diary/MEMBER/list?ct=55401&page=2"
        ]

    def test_without_params(self, base_url):
        url = create_proxy_url("/api/proxy", base_url, "/s/n46/api/list/member")

        assert url == "/api/proxy?url=https%3A%2F%2Fwww.nogizaka46.com%2Fs%2Fn46%2Fapi%2Flist%2Fmember"


class TestValidateProxyBody:
    @pytest.mark.parametrize("body", ["", "   \n"])
    def test_empty_body_is_rejected(self, body):
        with pytest.raises(InvalidResponseError):
            validate_proxy_body(body, expect_html=False)

    @pytest.mark.parametrize(
        "body",
        [HTML_PAGE, "<html lang='ja'><body></body></html>", "\n<!doctype HTML>\n<html>"],
    )
    def test_html_body_is_accepted(self, body):
        assert validate_proxy_body(body) == body

    @pytest.mark.parametrize("body", ['{"error": "Bad gateway"}', "Service Unavailable"])
    def test_non_html_body_is_rejected_when_html_expected(self, body):
        with pytest.raises(InvalidResponseError, match="non-HTML"):
            validate_proxy_body(body)

    def test_non_html_body_is_accepted_when_not_expected(self):
        assert validate_proxy_body('res({"data": []});', expect_html=False) == 'res({"data": []});'


class TestDefaultPolicy:
    def test_three_attempts_with_exponential_backoff(self):
        policy = default_proxy_retry_policy()

        assert policy.max_attempts == 3
        assert 2.0 <= policy.backoff(0) <= 3.0
        assert 4.0 <= policy.backoff(1) <= 6.0


@pytest.mark.asyncio
class TestFetchWithProxy:
    """Test fetch_with_proxy."""

    async def test_returns_body_and_sends_browser_headers(self, base_url, no_wait_policy):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, text=HTML_PAGE)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            body = await fetch_with_proxy(
                client, PROXY_ENDPOINT, base_url, "/s/n46/diary/detail/1", {"cd": "MEMBER"},
                retry_policy=no_wait_policy(3),
            )

        assert body == HTML_PAGE
        assert target_of(seen[0]) == f"{base_url}/s/n46/diary/detail/1?cd=MEMBER"
        assert seen[0].headers["User-Agent"] == PROXY_REQUEST_HEADERS["User-Agent"]

    async def test_invalid_body_is_retried(self, base_url, no_wait_policy):
        replies = iter(["", "upstream error", HTML_PAGE])

        def handler(request):
            return httpx.Response(200, text=next(replies))

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            body = await fetch_with_proxy(
                client, PROXY_ENDPOINT, base_url, "/", retry_policy=no_wait_policy(3)
            )

        assert body == HTML_PAGE

    async def test_invalid_body_after_last_attempt(self, base_url, no_wait_policy):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, text="")

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(InvalidResponseError):
                await fetch_with_proxy(
                    client, PROXY_ENDPOINT, base_url, "/", retry_policy=no_wait_policy(3)
                )

        assert len(calls) == 3

    async def test_client_error_is_not_retried(self, base_url, no_wait_policy):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(400, json={"error": "Invalid URL domain"})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(httpx.HTTPStatusError):
                await fetch_with_proxy(
                    client, PROXY_ENDPOINT, base_url, "/", retry_policy=no_wait_policy(3)
                )

        assert len(calls) == 1

    async def test_jsonp_reply_with_expect_html_false(self, base_url, no_wait_policy):
        def handler(request):
            return httpx.Response(200, text='res({"data": []});')

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            body = await fetch_with_proxy(
                client,
                PROXY_ENDPOINT,
                base_url,
                "/s/n46/api/list/member",
                expect_html=False,
                retry_policy=no_wait_policy(1),
            )

        assert body.startswith("res(")

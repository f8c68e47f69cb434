"""Pytest configuration and shared fixtures."""

import json
import sys
from pathlib import Path
from typing import Any, Dict, List

import pytest

# Add src directory to Python path for imports
project_root = Path(__file__).parent.parent
src_path = project_root / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from common.retry_utils import RetryPolicy, fixed_backoff
from common.schemas import Member

BASE_URL = "https://www.nogizaka46.com"


class RecordingSleep:
    """Async stand-in for asyncio.sleep that records delays instead of waiting."""

    def __init__(self, events: List[Any] = None):
        self.delays: List[float] = []
        self.events = events if events is not None else []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        self.events.append(("sleep", delay))


@pytest.fixture
def base_url() -> str:
    return BASE_URL


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def no_wait_policy():
    """Factory for retry policies that never wait between attempts."""

    def _policy(max_attempts: int = 4) -> RetryPolicy:
        return RetryPolicy(max_attempts=max_attempts, backoff=fixed_backoff(0.0))

    return _policy


@pytest.fixture
def member_entries() -> List[Dict[str, Any]]:
    """Raw member API entries, one graduated and one without an image."""
    return [
        {
            "code": "55401",
            "name": "井上 和",
            "english_name": "inoue nagi",
            "kana": "いのうえ なぎ",
            "cate": "5期生",
            "img": f"{BASE_URL}/images/46/inoue.jpg",
            "link": f"{BASE_URL}/s/n46/artist/55401",
            "graduation": "NO",
            "birthday": "2005/02/17",
        },
        {
            "code": 48006,
            "name": "遠藤 さくら",
            "english_name": "endo sakura",
            "kana": "えんどう さくら",
            "cate": "4期生",
            "img": "",
            "graduation": "NO",
            "birthday": "2001/10/03",
        },
        {
            "code": "36749",
            "name": "齋藤 飛鳥",
            "english_name": "saito asuka",
            "kana": "さいとう あすか",
            "cate": "1期生",
            "img": f"{BASE_URL}/images/46/saito.jpg",
            "graduation": "YES",
        },
    ]


@pytest.fixture
def member_jsonp(member_entries) -> str:
    """Member API reply wrapped the way the site sends it."""
    return f"res({json.dumps({'data': member_entries}, ensure_ascii=False)});"


@pytest.fixture
def make_member():
    """Factory for Member objects with sensible defaults."""

    def _make(code: str = "55401", name: str = "井上 和", **kwargs) -> Member:
        values = {"code": code, "name": name, "graduation": "NO"}
        values.update(kwargs)
        return Member(**values)

    return _make


def blog_card(blog_id: str, title: str, date: str = "2024.05.01 12:00") -> str:
    return (
        f'<a class="bl--card" href="/s/n46/diary/detail/{blog_id}?ima=0000&cd=MEMBER">'
        f'<div class="m--bg js-bg" data-src="{BASE_URL}/images/{blog_id}.jpg"></div>'
        f'<p class="bl--card__ttl">{title}</p>'
        f'<p class="bl--card__date">{date}</p>'
        f"</a>"
    )


def blog_list_html(cards: List[str], has_next: bool = False) -> str:
    pager = '<ul class="pager"><li class="next"><a href="?page=1">次へ</a></li></ul>' if has_next else ""
    return f"<!DOCTYPE html><html><body>{''.join(cards)}{pager}</body></html>"


def blog_detail_html(
    title: str = "春の日",
    content: str = '<p>こんにちは</p><img src="/images/photo.jpg">',
    member_code: str = "55401",
) -> str:
    return (
        "<!DOCTYPE html><html><body>"
        f'<h1 class="bd--title">{title}</h1>'
        '<p class="bd--hd__date">2024.05.01 12:00</p>'
        f'<div class="bd--edit">{content}</div>'
        f'<a class="bd--prof__link" href="/s/n46/artist/{member_code}">'
        '<p class="bd--prof__name">井上 和</p></a>'
        "</body></html>"
    )


@pytest.fixture
def html_factory():
    """Builders for blog site pages."""

    class _Factory:
        card = staticmethod(blog_card)
        list_page = staticmethod(blog_list_html)
        detail_page = staticmethod(blog_detail_html)

    return _Factory

"""Parse blog list pages, blog posts and the member API into typed records."""

import json
import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from bs4 import BeautifulSoup, Tag
from pydantic import ValidationError

from common.schemas import BlogPage, BlogSummary, Member
from scraper.errors import ParseError

logger = logging.getLogger(__name__)

BLOG_ID_PATTERN = re.compile(r"detail/(\d+)")
ARTIST_CODE_PATTERN = re.compile(r"/artist/(\d+)")
JSONP_PREFIX = re.compile(r"^\s*res\(")
JSONP_SUFFIX = re.compile(r"\);?\s*$")


@dataclass
class ParsedBlogDetail:
    """Fields read from a blog post page, before the member lookup."""

    title: str
    date: str
    content: str
    member_code: Optional[str]
    author: str


def get_image_url(image_path: Optional[str], base_url: str) -> str:
    """
    Make an image path absolute.

    Example:
        >>> get_image_url("/images/a.jpg", "https://example.com")
        'https://example.com/images/a.jpg'
    """
    if not image_path:
        return ""
    if image_path.startswith("http"):
        return image_path
    separator = "" if image_path.startswith("/") else "/"
    return f"{base_url}{separator}{image_path}"


def _text(root: Tag, selector: str) -> str:
    element = root.select_one(selector)
    return element.get_text(strip=True) if element else ""


def parse_blog_list_page(html: str, base_url: str, author: str = "") -> BlogPage:
    """
    Parse one page of a member's blog list.

    Cards whose link carries no post id are skipped.

    Args:
        html: Page HTML
        base_url: Site root used to build absolute links
        author: Author name to record on every card

    Returns:
        Blog cards and whether a next page exists
    """
    soup = BeautifulSoup(html, "html.parser")
    blogs: List[BlogSummary] = []

    for card in soup.select("a.bl--card"):
        link = card.get("href") or ""
        match = BLOG_ID_PATTERN.search(link)
        if not match:
            logger.warning(f"Skipping blog card without post id: {link!r}")
            continue

        thumbnail = card.select_one(".m--bg.js-bg")
        blogs.append(
            BlogSummary(
                id=match.group(1),
                title=_text(card, ".bl--card__ttl"),
                date=_text(card, ".bl--card__date"),
                link=get_image_url(link, base_url),
                thumbnail=(thumbnail.get("data-src") or "") if thumbnail else "",
                author=author,
            )
        )

    has_next_page = soup.select_one(".pager li.next a") is not None
    return BlogPage(blogs=blogs, has_next_page=has_next_page)


def parse_blog_detail(html: str, base_url: str) -> ParsedBlogDetail:
    """
    Parse a blog post page.

    Root-relative image sources in the body are made absolute so the content
    renders outside the site.

    Raises:
        ParseError: If the page has no post body
    """
    soup = BeautifulSoup(html, "html.parser")

    body = soup.select_one(".bd--edit")
    if body is None:
        raise ParseError("Blog post body (.bd--edit) not found")

    for img in body.find_all("img"):
        src = img.get("src")
        if src and src.startswith("/"):
            img["src"] = f"{base_url}{src}"

    profile_link = soup.select_one(".bd--prof__link")
    href = (profile_link.get("href") or "") if profile_link else ""
    code_match = ARTIST_CODE_PATTERN.search(href)

    return ParsedBlogDetail(
        title=_text(soup, ".bd--title"),
        date=_text(soup, ".bd--hd__date"),
        content=body.decode_contents(),
        member_code=code_match.group(1) if code_match else None,
        author=_text(soup, ".bd--prof__name"),
    )


def parse_member_jsonp(payload: str) -> List[Member]:
    """
    Parse the member API's JSONP reply (``res({...});``).

    Entries that fail validation are skipped with a warning.

    Raises:
        ParseError: If the payload is not the expected JSON object
    """
    json_text = JSONP_SUFFIX.sub("", JSONP_PREFIX.sub("", payload, count=1), count=1)
    try:
        data = json.loads(json_text)
    except json.JSONDecodeError as e:
        raise ParseError(f"Member API reply is not valid JSON: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("data"), list):
        raise ParseError("Member API reply has no 'data' list")

    members: List[Member] = []
    for item in data["data"]:
        try:
            members.append(Member.model_validate(item))
        except ValidationError as e:
            logger.warning(f"Skipping invalid member entry: {e.errors()[:1]}")
    return members

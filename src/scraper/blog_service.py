"""Fetch member lists, blog archives and blog posts from the blog site."""

import logging
from typing import Dict, List, Optional

import httpx

from common.cache import TTLCache
from common.config import Settings, settings as default_settings
from common.retry_utils import RetryPolicy, exponential_backoff, retry_with_policy
from common.schemas import PLACEHOLDER_MEMBER_IMAGE, BlogDetail, BlogPage, BlogSummary, Member
from common.utils import DateTimeUtils, StringUtils
from scraper.errors import ScraperError
from scraper.html_parser import (
    get_image_url,
    parse_blog_detail,
    parse_blog_list_page,
    parse_member_jsonp,
)

logger = logging.getLogger(__name__)

BLOG_LIST_PATH = "/s/n46/diary/MEMBER/list"
BLOG_DETAIL_PATH = "/s/n46/diary/detail/{blog_id}"
MEMBER_API_PATH = "/s/n46/api/list/member"


class BlogService:
    """
    Reads the blog site directly over HTTP.

    The service owns a cache of blog post details; callers that want one
    pass the service around instead of reaching for module state.

    Args:
        client: Shared async HTTP client
        config: Settings, defaults to the global settings
        detail_cache: Cache of blog details, built from settings if omitted
        retry_policy: Retry policy for site requests
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        config: Optional[Settings] = None,
        detail_cache: Optional[TTLCache[str, BlogDetail]] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.client = client
        self.config = config or default_settings
        self.base_url = self.config.blog_base_url.rstrip("/")
        self.detail_cache = detail_cache or TTLCache(
            capacity=self.config.blog_detail_cache_capacity,
            ttl_seconds=self.config.blog_detail_cache_ttl_seconds,
            name="blog-detail",
        )
        self.retry_policy = retry_policy or RetryPolicy(
            max_attempts=self.config.scraper_max_retries + 1,
            backoff=exponential_backoff(
                initial_delay=self.config.scraper_retry_initial_delay,
                max_delay=self.config.scraper_retry_max_delay,
            ),
        )

    @property
    def _retry_decorator(self):
        return retry_with_policy(self.retry_policy)

    def _headers(self) -> Dict[str, str]:
        return {"User-Agent": self.config.scraper_user_agent}

    async def _get_text_impl(self, path: str, params: Optional[Dict[str, object]] = None) -> str:
        response = await self.client.get(
            f"{self.base_url}{path}",
            params=params,
            headers=self._headers(),
            timeout=self.config.scraper_timeout,
        )
        response.raise_for_status()
        return response.text

    async def _get_text(self, path: str, params: Optional[Dict[str, object]] = None) -> str:
        """GET a site path with retries; failures become ScraperError."""
        decorated = self._retry_decorator(self._get_text_impl)
        try:
            return await decorated(path, params)
        except httpx.HTTPStatusError as e:
            raise ScraperError(
                f"{path} returned HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise ScraperError(f"Request for {path} failed: {e}") from e

    async def fetch_blog_page(
        self, member_code: str, page: int = 0, author: str = ""
    ) -> BlogPage:
        """Fetch and parse one page of a member's blog list."""
        html = await self._get_text(
            BLOG_LIST_PATH,
            {"ct": member_code, "page": page, "ima": DateTimeUtils.get_unix_timestamp()},
        )
        blog_page = parse_blog_list_page(html, self.base_url, author=author)
        logger.debug(
            f"Member {member_code} page {page}: {len(blog_page.blogs)} blog(s), "
            f"next={blog_page.has_next_page}"
        )
        return blog_page

    async def fetch_all_blogs(self, member_code: str, author: str = "") -> List[BlogSummary]:
        """
        Fetch every blog card of a member by following pagination.

        Stops after ``scraper_max_pages`` pages even if the site reports more.
        """
        blogs: List[BlogSummary] = []
        page = 0
        while page < self.config.scraper_max_pages:
            blog_page = await self.fetch_blog_page(member_code, page, author=author)
            blogs.extend(blog_page.blogs)
            if not blog_page.has_next_page:
                break
            page += 1
        else:
            logger.warning(
                f"⚠️  Stopped after {self.config.scraper_max_pages} pages for member {member_code}"
            )

        logger.info(f"Fetched {len(blogs)} blog(s) for member {member_code}")
        return blogs

    async def fetch_members(self, active_only: bool = True) -> List[Member]:
        """
        Fetch the member list.

        Args:
            active_only: Drop graduated members

        Returns:
            Members, each with an image (placeholder when the API has none)
        """
        payload = await self._get_text(MEMBER_API_PATH, {"callback": "res"})
        members = parse_member_jsonp(payload)
        if active_only:
            members = [member for member in members if member.is_active]
        return [
            member if member.img else member.model_copy(update={"img": PLACEHOLDER_MEMBER_IMAGE})
            for member in members
        ]

    async def fetch_member_info(self, member_code: str) -> Optional[Member]:
        """Find a member (active or graduated) by code."""
        members = await self.fetch_members(active_only=False)
        target = str(member_code).strip()
        for member in members:
            if member.code == target:
                return member
        logger.info(f"Member {member_code} not found among {len(members)} member(s)")
        return None

    async def fetch_member_info_by_name(self, member_name: str) -> Optional[Member]:
        """Find a member by exact name, ignoring whitespace."""
        target = StringUtils.remove_all_whitespace(member_name)
        if not target:
            return None
        members = await self.fetch_members(active_only=False)
        for member in members:
            if StringUtils.remove_all_whitespace(member.name) == target:
                return member
        return None

    async def fetch_blog_detail(self, blog_id: str) -> BlogDetail:
        """
        Fetch a blog post and the author's profile image, and cache the result.

        Raises:
            ScraperError: If the post cannot be fetched or parsed
        """
        blog_id = str(blog_id)
        html = await self._get_text(
            BLOG_DETAIL_PATH.format(blog_id=blog_id),
            {"cd": "MEMBER", "ima": DateTimeUtils.get_unix_timestamp()},
        )
        parsed = parse_blog_detail(html, self.base_url)

        member_image = None
        if parsed.member_code:
            try:
                member = await self.fetch_member_info(parsed.member_code)
            except ScraperError as e:
                logger.warning(f"⚠️  Could not load member {parsed.member_code}: {e}")
                member = None
            member_image = member.img if member else None

        detail = BlogDetail(
            id=blog_id,
            title=parsed.title,
            date=parsed.date,
            content=parsed.content,
            member_code=parsed.member_code,
            author=parsed.author,
            member_image=member_image,
            original_url=f"{self.base_url}{BLOG_DETAIL_PATH.format(blog_id=blog_id)}?cd=MEMBER",
        )
        self.detail_cache.set(blog_id, detail)
        return detail

    def get_cached_blog_detail(self, blog_id: str) -> Optional[BlogDetail]:
        return self.detail_cache.get(str(blog_id))

    async def get_blog_detail(self, blog_id: str) -> BlogDetail:
        """Return the cached detail or fetch it."""
        cached = self.get_cached_blog_detail(blog_id)
        if cached is not None:
            return cached
        return await self.fetch_blog_detail(blog_id)

    def get_image_url(self, image_path: Optional[str]) -> str:
        return get_image_url(image_path, self.base_url)

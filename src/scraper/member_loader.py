"""Member lookup that tries an ordered list of strategies."""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional

import httpx

from common.cache import TTLCache
from common.config import Settings, settings as default_settings
from common.schemas import Member
from scraper.blog_service import MEMBER_API_PATH, BlogService
from scraper.errors import ScraperError
from scraper.html_parser import parse_member_jsonp
from scraper.proxy_client import fetch_with_proxy

logger = logging.getLogger(__name__)

# (member_code, member_name) -> member or None
LookupFunction = Callable[[str, Optional[str]], Awaitable[Optional[Member]]]

DEFAULT_MAX_RETRIES = 3


@dataclass(frozen=True)
class MemberLookupStrategy:
    """One way of finding a member; all strategies share the same signature."""

    name: str
    lookup: LookupFunction


def service_strategy(service: BlogService) -> MemberLookupStrategy:
    """Look the member up by code with a direct request to the site."""

    async def lookup(member_code: str, member_name: Optional[str]) -> Optional[Member]:
        return await service.fetch_member_info(member_code)

    return MemberLookupStrategy("direct", lookup)


def proxy_strategy(
    client: httpx.AsyncClient, config: Optional[Settings] = None
) -> MemberLookupStrategy:
    """Look the member up by code through the CORS proxy endpoint."""
    config = config or default_settings

    async def lookup(member_code: str, member_name: Optional[str]) -> Optional[Member]:
        payload = await fetch_with_proxy(
            client,
            config.proxy_endpoint,
            config.blog_base_url.rstrip("/"),
            MEMBER_API_PATH,
            {"callback": "res"},
            expect_html=False,
        )
        target = str(member_code).strip()
        for member in parse_member_jsonp(payload):
            if member.code == target:
                return member
        return None

    return MemberLookupStrategy("proxy", lookup)


def name_strategy(service: BlogService) -> MemberLookupStrategy:
    """Look the member up by name; skipped when no name is known."""

    async def lookup(member_code: str, member_name: Optional[str]) -> Optional[Member]:
        if not member_name:
            return None
        return await service.fetch_member_info_by_name(member_name)

    return MemberLookupStrategy("name", lookup)


class MemberLoader:
    """
    Loads member profiles with caching and a bounded number of failed loads.

    Strategies are tried in order until one returns a member. A strategy
    that raises a transport or scraper error counts as a miss. After
    ``max_retries`` loads in a row found nothing for a code, further loads
    return None until :meth:`force_retry` or :meth:`reset` is called.
    """

    def __init__(
        self,
        strategies: List[MemberLookupStrategy],
        cache: TTLCache[str, Member],
        max_retries: int = DEFAULT_MAX_RETRIES,
    ):
        if not strategies:
            raise ValueError("at least one strategy is required")
        self.strategies = strategies
        self.cache = cache
        self.max_retries = max_retries
        self._failed_loads: Dict[str, int] = {}

    @classmethod
    def from_service(
        cls,
        service: BlogService,
        client: httpx.AsyncClient,
        config: Optional[Settings] = None,
    ) -> "MemberLoader":
        """Build the loader with the standard strategy order: direct, proxy, name."""
        config = config or default_settings
        cache: TTLCache[str, Member] = TTLCache(
            capacity=config.member_cache_capacity,
            ttl_seconds=config.member_cache_ttl_seconds,
            name="member",
        )
        strategies = [
            service_strategy(service),
            proxy_strategy(client, config),
            name_strategy(service),
        ]
        return cls(strategies, cache)

    def failed_loads(self, member_code: str) -> int:
        return self._failed_loads.get(str(member_code), 0)

    async def _try_strategy(
        self, strategy: MemberLookupStrategy, member_code: str, member_name: Optional[str]
    ) -> Optional[Member]:
        try:
            member = await strategy.lookup(member_code, member_name)
        except (ScraperError, httpx.HTTPError) as e:
            logger.warning(f"⚠️  Member lookup '{strategy.name}' failed for {member_code}: {e}")
            return None

        if member is None:
            logger.debug(f"Member lookup '{strategy.name}' found nothing for {member_code}")
        return member

    async def load_member(
        self,
        member_code: str,
        member_name: Optional[str] = None,
        record_failure: bool = True,
    ) -> Optional[Member]:
        """
        Return the member for ``member_code``, or None if no strategy finds it.

        Args:
            member_code: Member code
            member_name: Optional name used by the name strategy
            record_failure: Count a miss towards ``max_retries``; callers that
                only want the member as extra context pass False
        """
        member_code = str(member_code).strip()

        cached = self.cache.get(member_code)
        if cached is not None:
            return cached

        failures = self.failed_loads(member_code)
        if failures >= self.max_retries:
            logger.info(f"Max retries reached for member {member_code}, not loading")
            return None

        logger.info(
            f"Loading member {member_code} (attempt {failures + 1}/{self.max_retries})"
        )
        for strategy in self.strategies:
            member = await self._try_strategy(strategy, member_code, member_name)
            if member is not None:
                logger.info(f"✅ Member {member_code} found via '{strategy.name}'")
                self.cache.set(member_code, member)
                self._failed_loads.pop(member_code, None)
                return member

        if record_failure:
            self._failed_loads[member_code] = failures + 1
        logger.warning(f"⚠️  No strategy found member {member_code}")
        return None

    def reset(self, member_code: str) -> None:
        """Forget cached data and failed loads for a member."""
        member_code = str(member_code).strip()
        self._failed_loads.pop(member_code, None)
        self.cache.delete(member_code)

    async def force_retry(
        self, member_code: str, member_name: Optional[str] = None
    ) -> Optional[Member]:
        """Reset the member and load it again."""
        self.reset(member_code)
        return await self.load_member(member_code, member_name)

    def debug_info(self, member_code: str) -> Dict[str, object]:
        member_code = str(member_code).strip()
        cached = self.cache.get(member_code)
        return {
            "member_code": member_code,
            "failed_loads": self.failed_loads(member_code),
            "max_retries": self.max_retries,
            "cached": cached is not None,
            "cached_member": cached.model_dump() if cached else None,
            "strategies": [strategy.name for strategy in self.strategies],
            "cache": self.cache.stats(),
        }

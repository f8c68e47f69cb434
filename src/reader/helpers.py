"""Helper functions for the reader API endpoints."""

import logging
from typing import Dict, List, Optional

import httpx

from common.schemas import Member
from reader.schemas import MemberGroup

logger = logging.getLogger(__name__)

# Display order of generations; anything else goes after these
GEN_ORDER = ["6期生", "5期生", "4期生", "3期生", "2期生", "1期生", "その他"]


def filter_members(
    members: List[Member],
    generation: Optional[str] = None,
    keyword: Optional[str] = None,
) -> List[Member]:
    """
    Filter members by generation and by a keyword.

    The keyword matches name, romanized name or kana, case-insensitively.

    Args:
        members: Members to filter
        generation: Generation label, e.g. '5期生'; empty or None keeps all
        keyword: Search text; empty or None keeps all

    Returns:
        Matching members in their original order
    """
    needle = (keyword or "").strip().lower()
    return [
        member
        for member in members
        if (not generation or member.generation == generation)
        and (not needle or needle in member.search_text())
    ]


def group_members_by_generation(members: List[Member]) -> List[MemberGroup]:
    """
    Group members by generation in display order.

    Known generations come first in ``GEN_ORDER``; unknown generations follow
    in the order they first appear. Empty groups are left out.
    """
    grouped: Dict[str, List[Member]] = {}
    for member in members:
        grouped.setdefault(member.generation, []).append(member)

    ordered = [gen for gen in GEN_ORDER if gen in grouped]
    ordered += [gen for gen in grouped if gen not in GEN_ORDER]
    return [MemberGroup(generation=gen, members=grouped[gen]) for gen in ordered]


def translation_cache_key(blog_id: str, target_language: str) -> str:
    return f"{blog_id}:{target_language}"


def format_sse_event(data: str, event: Optional[str] = None) -> str:
    """
    Format one Server-Sent Event.

    Multi-line data is sent as several ``data:`` lines so the client joins
    them back with newlines.
    """
    lines = [f"event: {event}"] if event else []
    lines += [f"data: {line}" for line in data.split("\n")]
    return "\n".join(lines) + "\n\n"


def scraper_error_status(error: Exception) -> int:
    """HTTP status for a failed site request: 404 if the site said so, else 502."""
    cause = error.__cause__
    if isinstance(cause, httpx.HTTPStatusError) and cause.response.status_code == 404:
        return 404
    return 502

"""Reader API request and response schemas."""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from common.schemas import BlogSummary, HealthResponse, Member
from common.utils import LanguageUtils

__all__ = [
    "BlogListResponse",
    "HealthResponse",
    "MemberGroup",
    "MemberListResponse",
    "TranslateRequest",
    "TranslateResponse",
]


class TranslateRequest(BaseModel):
    """Schema for requesting a blog translation."""

    target_language: str = Field(..., description="ISO 639-1 code: 'en' or 'vi'")

    @field_validator("target_language")
    @classmethod
    def validate_target_language(cls, v: str) -> str:
        """
        Validate the target language is one the reader translates into.

        Raises:
            ValueError: If the code is unsupported or is the source language
        """
        normalized = (v or "").strip().lower()
        if not LanguageUtils.is_translation_target(normalized):
            raise ValueError(f"Unsupported target language: {v!r}")
        return normalized


class TranslateResponse(BaseModel):
    """Translated title and content of a blog post."""

    blog_id: str
    target_language: str
    title: str
    content: str
    cached: bool = False


class MemberGroup(BaseModel):
    """Members of one generation."""

    generation: str
    members: List[Member] = Field(default_factory=list)


class MemberListResponse(BaseModel):
    total: int
    groups: List[MemberGroup] = Field(default_factory=list)


class BlogListResponse(BaseModel):
    member_code: str
    member: Optional[Member] = None
    total: int
    blogs: List[BlogSummary] = Field(default_factory=list)

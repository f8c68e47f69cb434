"""Shared Pydantic schemas for the blog reader."""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from common.utils import DateTimeUtils

# Generation label used when the member API gives none
UNKNOWN_GENERATION = "その他"

PLACEHOLDER_MEMBER_IMAGE = "https://via.placeholder.com/300x300?text=No+Image"


class Member(BaseModel):
    """A member entry from the site's member list API."""

    model_config = ConfigDict(extra="ignore")

    code: str = Field(..., description="Member code used in blog list URLs")
    name: str = Field(..., description="Member name in Japanese")
    english_name: Optional[str] = Field(None, description="Romanized name")
    kana: Optional[str] = Field(None, description="Name reading in kana")
    cate: Optional[str] = Field(None, description="Generation label, e.g. '5期生'")
    groupcode: Optional[str] = Field(None, description="Fallback generation label")
    img: Optional[str] = Field(None, description="Profile image URL")
    link: Optional[str] = Field(None, description="Profile page URL")
    graduation: Optional[str] = Field(None, description="'NO' for active members")
    birthday: Optional[str] = Field(None, description="Birthday as YYYY/MM/DD")
    blood: Optional[str] = None
    constellation: Optional[str] = None

    @field_validator("code", mode="before")
    @classmethod
    def coerce_code_to_string(cls, v):
        """The API sends codes as strings or numbers; normalize to string."""
        if v is None:
            raise ValueError("code is required")
        return str(v).strip()

    @property
    def generation(self) -> str:
        """Generation label, falling back to the group code and then 'その他'."""
        return (
            (self.cate or "").strip()
            or (self.groupcode or "").strip()
            or UNKNOWN_GENERATION
        )

    @property
    def is_active(self) -> bool:
        return self.graduation == "NO"

    def age_on(self, today: Optional[date] = None) -> Optional[int]:
        return DateTimeUtils.calculate_age(self.birthday, today)

    @computed_field
    @property
    def age(self) -> Optional[int]:
        """Current age in years, shown on the member profile."""
        return self.age_on()

    def search_text(self) -> str:
        """Lower-cased text matched by member keyword search."""
        return f"{self.name} {self.english_name or ''} {self.kana or ''}".lower()


class BlogSummary(BaseModel):
    """One card of a member's blog list."""

    id: str = Field(..., description="Blog post id")
    title: str = ""
    date: str = Field("", description="Publication date as shown on the site")
    link: str = Field(..., description="Absolute URL of the post")
    thumbnail: str = ""
    author: str = ""


class BlogPage(BaseModel):
    """One page of a member's blog list."""

    blogs: List[BlogSummary] = Field(default_factory=list)
    has_next_page: bool = False


class BlogDetail(BaseModel):
    """A full blog post with its content as HTML."""

    id: str
    title: str = ""
    date: str = ""
    content: str = Field("", description="Inner HTML of the post body")
    member_code: Optional[str] = None
    author: str = ""
    member_image: Optional[str] = None
    original_url: str


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "healthy"
    timestamp: datetime = Field(default_factory=DateTimeUtils.get_current_utc_datetime)
    version: str = "1.0.0"

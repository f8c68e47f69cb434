"""Configuration management for the blog reader."""

from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

# This file is in src/common/, so go up 2 levels to project root
PROJECT_ROOT = Path(__file__).parent.parent.parent


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Configuration
    api_host: str = Field(default="0.0.0.0", env="API_HOST")
    api_port: int = Field(default=8000, env="API_PORT")
    cors_allowed_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        env="CORS_ALLOWED_ORIGINS",
    )  # Comma-separated list of origins

    # Logging
    log_level: str = Field(default="INFO", env="LOG_LEVEL")

    # Blog site
    blog_base_url: str = Field(
        default="https://www.nogizaka46.com", env="BLOG_BASE_URL"
    )
    scraper_user_agent: str = Field(
        default=(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
        ),
        env="SCRAPER_USER_AGENT",
    )
    scraper_timeout: float = Field(default=15.0, env="SCRAPER_TIMEOUT")
    scraper_max_retries: int = Field(
        default=2, env="SCRAPER_MAX_RETRIES"
    )  # Retries after the initial request
    scraper_retry_initial_delay: float = Field(
        default=2.0, env="SCRAPER_RETRY_INITIAL_DELAY"
    )
    scraper_retry_max_delay: float = Field(
        default=30.0, env="SCRAPER_RETRY_MAX_DELAY"
    )
    scraper_max_pages: int = Field(
        default=100, env="SCRAPER_MAX_PAGES"
    )  # Upper bound when following blog list pagination

    # CORS proxy
    proxy_allowed_prefixes: str = Field(
        default="https://www.nogizaka46.com/", env="PROXY_ALLOWED_PREFIXES"
    )  # Comma-separated list of URL prefixes the proxy may fetch
    proxy_endpoint: str = Field(
        default="http://localhost:8000/api/proxy", env="PROXY_ENDPOINT"
    )
    proxy_timeout: float = Field(default=30.0, env="PROXY_TIMEOUT")
    proxy_cache_max_age: int = Field(
        default=300, env="PROXY_CACHE_MAX_AGE"
    )  # 5 minutes

    # In-memory caches
    member_cache_ttl_seconds: float = Field(
        default=300.0, env="MEMBER_CACHE_TTL_SECONDS"
    )  # 5 minutes
    member_cache_capacity: int = Field(default=256, env="MEMBER_CACHE_CAPACITY")
    blog_detail_cache_capacity: int = Field(
        default=200, env="BLOG_DETAIL_CACHE_CAPACITY"
    )
    blog_detail_cache_ttl_seconds: float = Field(
        default=1800.0, env="BLOG_DETAIL_CACHE_TTL_SECONDS"
    )  # 30 minutes
    translation_cache_capacity: int = Field(
        default=500, env="TRANSLATION_CACHE_CAPACITY"
    )
    translation_cache_ttl_seconds: float = Field(
        default=86400.0, env="TRANSLATION_CACHE_TTL_SECONDS"
    )  # 1 day

    # Translation backend (Gemini through its OpenAI-compatible endpoint)
    gemini_api_key: Optional[str] = Field(default=None, env="GEMINI_API_KEY")
    gemini_model: str = Field(default="gemini-2.0-flash", env="GEMINI_MODEL")
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta/openai/",
        env="GEMINI_BASE_URL",
    )
    gemini_timeout: float = Field(
        default=120.0, env="GEMINI_TIMEOUT"
    )  # Per-request timeout in seconds
    gemini_temperature: float = Field(default=0.3, env="GEMINI_TEMPERATURE")

    # Translation pipeline
    translation_max_chunk_length: int = Field(
        default=2000, env="TRANSLATION_MAX_CHUNK_LENGTH"
    )  # Characters per chunk
    translation_batch_size: int = Field(
        default=3, env="TRANSLATION_BATCH_SIZE"
    )  # Concurrent requests per batch
    translation_batch_delay: float = Field(
        default=1.0, env="TRANSLATION_BATCH_DELAY"
    )  # Pause between batches in seconds
    translation_max_retries: int = Field(
        default=3, env="TRANSLATION_MAX_RETRIES"
    )  # Retries after the initial request
    translation_retry_delay: float = Field(
        default=2.0, env="TRANSLATION_RETRY_DELAY"
    )  # Fixed delay between retries in seconds

    @field_validator(
        "translation_max_chunk_length", "translation_batch_size", "scraper_max_pages"
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """
        Ensure sizing settings are strictly positive.

        Args:
            v: Configured value

        Returns:
            The value unchanged

        Raises:
            ValueError: If the value is zero or negative
        """
        if v <= 0:
            raise ValueError("must be greater than zero")
        return v

    @field_validator(
        "translation_batch_delay", "translation_retry_delay", "translation_max_retries"
    )
    @classmethod
    def validate_non_negative(cls, v):
        """Reject negative delays and retry counts."""
        if v < 0:
            raise ValueError("must not be negative")
        return v

    @staticmethod
    def _split_csv(value: str) -> List[str]:
        return [item.strip() for item in value.split(",") if item.strip()]

    def get_cors_allowed_origins(self) -> List[str]:
        """Return the configured CORS origins as a list."""
        return self._split_csv(self.cors_allowed_origins)

    def get_proxy_allowed_prefixes(self) -> List[str]:
        """Return the URL prefixes the proxy endpoint is allowed to fetch."""
        return self._split_csv(self.proxy_allowed_prefixes)

    def get_translation_max_attempts(self) -> int:
        """Total attempts per translation request (initial try plus retries)."""
        return self.translation_max_retries + 1

    class Config:
        env_file = str(PROJECT_ROOT / ".env")
        case_sensitive = False


# Global settings instance
settings = Settings()

"""Unit tests for configuration management module."""

import pytest
from pydantic import ValidationError

from common.config import Settings


@pytest.mark.unit
class TestSettingsDefaults:
    """Test Settings class initialization with default values."""

    def test_translation_pipeline_defaults(self, monkeypatch):
        """Test chunking, batching and retry defaults."""
        for name in (
            "TRANSLATION_MAX_CHUNK_LENGTH",
            "TRANSLATION_BATCH_SIZE",
            "TRANSLATION_BATCH_DELAY",
            "TRANSLATION_MAX_RETRIES",
            "TRANSLATION_RETRY_DELAY",
        ):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)

        assert settings.translation_max_chunk_length == 2000
        assert settings.translation_batch_size == 3
        assert settings.translation_batch_delay == 1.0
        assert settings.translation_max_retries == 3
        assert settings.translation_retry_delay == 2.0

    def test_site_and_proxy_defaults(self):
        """Test blog site and proxy defaults."""
        settings = Settings(_env_file=None)

        assert settings.blog_base_url == "https://www.nogizaka46.com"
        assert settings.proxy_allowed_prefixes == "https://www.nogizaka46.com/"
        assert settings.proxy_cache_max_age == 300
        assert settings.api_port == 8000

    def test_translation_max_attempts_counts_initial_request(self):
        """Max attempts is the initial request plus the configured retries."""
        settings = Settings(_env_file=None, translation_max_retries=3)

        assert settings.get_translation_max_attempts() == 4


@pytest.mark.unit
class TestSettingsFromEnvironment:
    """Test Settings read from environment variables."""

    def test_env_vars_override_defaults(self, monkeypatch):
        monkeypatch.setenv("TRANSLATION_BATCH_SIZE", "5")
        monkeypatch.setenv("GEMINI_MODEL", "gemini-test")

        settings = Settings(_env_file=None)

        assert settings.translation_batch_size == 5
        assert settings.gemini_model == "gemini-test"

    def test_env_vars_are_case_insensitive(self, monkeypatch):
        monkeypatch.setenv("translation_batch_delay", "0.5")

        settings = Settings(_env_file=None)

        assert settings.translation_batch_delay == 0.5


@pytest.mark.unit
class TestSettingsValidation:
    """Test Settings validators."""

    @pytest.mark.parametrize(
        "field_name",
        ["translation_max_chunk_length", "translation_batch_size", "scraper_max_pages"],
    )
    @pytest.mark.parametrize("value", [0, -1])
    def test_sizing_settings_must_be_positive(self, field_name, value):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **{field_name: value})

    @pytest.mark.parametrize(
        "field_name",
        ["translation_batch_delay", "translation_retry_delay", "translation_max_retries"],
    )
    def test_delays_and_retries_must_not_be_negative(self, field_name):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **{field_name: -1})

    def test_zero_delay_and_zero_retries_are_allowed(self):
        settings = Settings(
            _env_file=None, translation_batch_delay=0, translation_max_retries=0
        )

        assert settings.translation_batch_delay == 0
        assert settings.get_translation_max_attempts() == 1


@pytest.mark.unit
class TestListSettings:
    """Test comma-separated list settings."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("http://a.test,http://b.test", ["http://a.test", "http://b.test"]),
            (" http://a.test , http://b.test ", ["http://a.test", "http://b.test"]),
            ("http://a.test,,", ["http://a.test"]),
            ("", []),
        ],
    )
    def test_cors_allowed_origins_parsing(self, raw, expected):
        settings = Settings(_env_file=None, cors_allowed_origins=raw)

        assert settings.get_cors_allowed_origins() == expected

    def test_proxy_allowed_prefixes_parsing(self):
        settings = Settings(
            _env_file=None,
            proxy_allowed_prefixes="https://www.nogizaka46.com/, https://blog.example/",
        )

        assert settings.get_proxy_allowed_prefixes() == [
            "https://www.nogizaka46.com/",
            "https://blog.example/",
        ]

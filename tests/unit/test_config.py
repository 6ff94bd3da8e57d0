"""
Tests for environment-driven settings.
"""

import pytest
from pydantic import ValidationError

from packages.common.config import Settings


@pytest.fixture
def clean_env(monkeypatch):
    """Remove variables that would override defaults."""
    for name in [
        "ENVIRONMENT", "LOG_LEVEL", "FIREFLY_URL", "AI_PROVIDER",
        "AUTOCOMPLETE_LIMIT", "MATCHER_LENIENT_FALLBACK",
        "MATCHER_FIRST_CANDIDATE_FALLBACK", "JOB_TIME_LIMIT_SECONDS",
    ]:
        monkeypatch.delenv(name, raising=False)


class TestSettings:
    """Test defaults, parsing and validation."""

    def test_defaults(self, clean_env):
        """Defaults favor strict matching and always escalating to AI."""
        settings = Settings(_env_file=None)

        assert settings.ai_provider == "openai"
        assert settings.autocomplete_limit == 15
        assert settings.matcher_lenient_fallback is False
        assert settings.matcher_first_candidate_fallback is False
        assert settings.job_time_limit_seconds == 30
        assert settings.log_level == "INFO"

    def test_reads_environment(self, clean_env, monkeypatch):
        """Values are picked up from environment variables."""
        monkeypatch.setenv("AI_PROVIDER", "Gemini")
        monkeypatch.setenv("MATCHER_LENIENT_FALLBACK", "true")
        monkeypatch.setenv("AUTOCOMPLETE_LIMIT", "25")
        monkeypatch.setenv("FIREFLY_URL", "http://firefly:8080/")

        settings = Settings(_env_file=None)

        assert settings.ai_provider == "gemini"
        assert settings.matcher_lenient_fallback is True
        assert settings.autocomplete_limit == 25
        assert settings.firefly_url == "http://firefly:8080"

    def test_log_level_uppercased(self, clean_env):
        """Log level is case-insensitive."""
        assert Settings(_env_file=None, LOG_LEVEL="debug").log_level == "DEBUG"

    def test_invalid_log_level(self, clean_env):
        """Unknown log levels are rejected."""
        with pytest.raises(ValidationError):
            Settings(_env_file=None, LOG_LEVEL="chatty")

    def test_invalid_environment(self, clean_env):
        """Only known environments are accepted."""
        with pytest.raises(ValidationError):
            Settings(_env_file=None, ENVIRONMENT="qa")

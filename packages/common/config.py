"""
Expense account worker configuration

Read from environment variables (and .env): Firefly III access, matcher
behaviour, AI provider selection and credentials, Celery broker.
"""
from functools import lru_cache
from typing import Optional

from pydantic import Field, validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Worker settings, one field per environment variable"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Runtime
    environment: str = Field(default="production", alias="ENVIRONMENT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Firefly III
    firefly_url: Optional[str] = Field(default=None, alias="FIREFLY_URL")
    firefly_personal_token: Optional[str] = Field(default=None, alias="FIREFLY_PERSONAL_TOKEN")
    firefly_timeout_seconds: float = Field(default=15.0, alias="FIREFLY_TIMEOUT_SECONDS")

    # Expense account matching
    autocomplete_limit: int = Field(default=15, alias="AUTOCOMPLETE_LIMIT")
    matcher_lenient_fallback: bool = Field(default=False, alias="MATCHER_LENIENT_FALLBACK")
    matcher_first_candidate_fallback: bool = Field(default=False, alias="MATCHER_FIRST_CANDIDATE_FALLBACK")

    # AI provider selection
    ai_provider: str = Field(default="openai", alias="AI_PROVIDER")

    # OpenAI
    openai_api_key: Optional[str] = Field(default=None, alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4o-mini", alias="OPENAI_MODEL")
    openai_temperature: float = Field(default=0.3, alias="OPENAI_TEMPERATURE")

    # Gemini
    gemini_api_key: Optional[str] = Field(default=None, alias="GEMINI_API_KEY")
    gemini_model: str = Field(default="gemini-2.5-flash", alias="GEMINI_MODEL")
    gemini_temperature: float = Field(default=0.3, alias="GEMINI_TEMPERATURE")

    # Anthropic
    anthropic_api_key: Optional[str] = Field(default=None, alias="ANTHROPIC_API_KEY")
    anthropic_model: str = Field(default="claude-sonnet-4-5", alias="ANTHROPIC_MODEL")
    anthropic_temperature: float = Field(default=0.0, alias="ANTHROPIC_TEMPERATURE")

    # Celery job runner
    celery_broker_url: str = Field(default="redis://redis:6379/1", alias="CELERY_BROKER_URL")
    celery_result_backend: str = Field(default="redis://redis:6379/2", alias="CELERY_RESULT_BACKEND")
    job_time_limit_seconds: int = Field(default=30, alias="JOB_TIME_LIMIT_SECONDS")

    @validator("log_level")
    def validate_log_level(cls, v):
        """Normalize to an upper-case logging level name"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    @validator("environment")
    def validate_environment(cls, v):
        """Normalize to a known deployment environment"""
        valid_envs = ["development", "staging", "production"]
        if v.lower() not in valid_envs:
            raise ValueError(f"ENVIRONMENT must be one of {valid_envs}")
        return v.lower()

    @validator("ai_provider")
    def validate_ai_provider(cls, v):
        return v.strip().lower()

    @validator("firefly_url")
    def strip_trailing_slash(cls, v):
        """Firefly paths are appended as /api/v1/..."""
        if v is None:
            return v
        return v.rstrip("/")


@lru_cache()
def get_settings() -> Settings:
    """Settings are read once per process"""
    return Settings()

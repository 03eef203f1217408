from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database (default uses docker-compose service name)
    database_url: str = "postgresql+psycopg2://classqa:classqa_dev@db:5432/classqa"

    # Redis (default uses docker-compose service name)
    redis_url: str = "redis://redis:6379/0"
    redis_socket_timeout_seconds: float = 2.0

    # App settings
    app_name: str = "ClassQA"
    debug: bool = False
    log_level: str = "INFO"

    # Rate limiting
    rate_limit_fail_open: bool = False  # Allow writes when Redis is unreachable
    question_rate_limit_count: int = 10
    question_rate_limit_window_seconds: int = 60
    upvote_rate_limit_count: int = 0  # 0 disables the upvote limiter
    upvote_rate_limit_window_seconds: int = 60

    # Session gating
    block_scheduled_submissions: bool = False  # Reject Q&A writes before a session goes ACTIVE

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()

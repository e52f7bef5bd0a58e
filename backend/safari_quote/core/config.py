from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration read from environment variables."""

    database_url: str = Field(..., alias="DATABASE_URL")
    db_pool_min_size: int = Field(1, alias="DB_POOL_MIN_SIZE")
    db_pool_max_size: int = Field(5, alias="DB_POOL_MAX_SIZE")
    reference_retry_attempts: int = Field(3, alias="REFERENCE_RETRY_ATTEMPTS")

    redis_url: str = Field("redis://127.0.0.1:6379/0", alias="REDIS_URL")
    session_ttl_seconds: int = Field(86_400, alias="SESSION_TTL_SECONDS")
    use_redis_state_store: bool = Field(
        True,
        alias="USE_REDIS_STATE_STORE",
        description="Keep wizard sessions in Redis instead of process memory",
    )

    resend_api_key: str = Field("", alias="RESEND_API_KEY")
    resend_api_url: AnyHttpUrl = Field("https://api.resend.com", alias="RESEND_API_URL")
    from_email: str = Field("noreply@yourdomain.com", alias="FROM_EMAIL")
    reply_to_email: str = Field("support@yourdomain.com", alias="REPLY_TO_EMAIL")
    company_name: str = Field("Safari Quote", alias="COMPANY_NAME")
    site_url: str = Field("http://localhost:3000", alias="SITE_URL")
    email_timeout: float = Field(10.0, alias="EMAIL_TIMEOUT")

    app_env: Literal["dev", "prod", "test"] = Field("dev", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    api_prefix: str = "/v1"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings"]

"""Configuration settings for the Chronolog backend."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Shared login password; login fails with 500 until it is set
    auth_password: str | None = None
    # Static token for the read-only public entries endpoint
    public_api_token: str | None = None
    # Bearer secret for the comment write-back endpoint
    webhook_secret: str | None = None

    # Storage
    database_path: str = "chronolog.db"
    blob_dir: str = "blobs"

    # Tokens
    token_ttl_days: int = 30

    # Uploads
    max_upload_bytes: int = 10 * 1024 * 1024

    # App
    login_rate_limit: str = "10/minute"
    debug: bool = False
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra env vars not in model


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

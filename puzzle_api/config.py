"""
Configuration and settings for the puzzle API.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PLACEHOLDER_PUBLIC_BUCKET_URL = "https://your-account.r2.dev/puzzles"


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service.

    Every field is read from the upper-cased environment variable of the same
    name (``DATABASE_URL``, ``ADMIN_PASSWORD``...) or from ``.env``.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    log_level: str = Field(default="INFO")

    # Record store (any SQLAlchemy URL, Postgres or SQLite)
    database_url: Optional[str] = Field(default=None)

    # Player registry (Redis)
    redis_url: Optional[str] = Field(default=None)
    redis_player_prefix: str = Field(default="puzzle:player:")

    # S3-compatible blob storage (R2, COS, MinIO...)
    s3_endpoint: Optional[str] = Field(default=None)
    s3_region: Optional[str] = Field(default=None)
    s3_bucket: Optional[str] = Field(default=None)
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)
    # Base used to build public URLs for catalog images. The default is a
    # placeholder domain and must be overridden for real deployments.
    public_bucket_url: str = Field(default=PLACEHOLDER_PUBLIC_BUCKET_URL)

    # Shared admin credential
    admin_password: Optional[str] = Field(default=None)

    # Built admin panel served for non-API paths
    spa_dist_dir: Optional[str] = Field(default=None)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()

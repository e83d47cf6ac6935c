"""
Configuration loader for the photo pipeline service.

Environment variables are centralized here so the rest of the code only sees a
typed ``Settings`` object handed in at process start.
"""

import json
from functools import lru_cache
from typing import Annotated, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from .exceptions import ConfigurationError

MIB = 1024 * 1024


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Token verification
    jwt_secret: Optional[str] = None
    jwt_algorithm: str = "HS256"

    # S3-compatible storage
    s3_access_key: Optional[str] = None
    s3_secret_key: Optional[str] = None
    s3_region: Optional[str] = None
    s3_endpoint: Optional[str] = None
    s3_bucket: Optional[str] = None
    public_base_url: Optional[str] = None
    presign_ttl_seconds: int = 3600

    # Downstream job queue
    redis_url: str = "redis://localhost:6379/0"
    upload_queue: str = "photo_worker"
    delete_queue: str = "photo_delete_worker"

    # Batch limits
    max_items: int = 30
    max_batch_bytes: int = 100 * MIB
    item_concurrency: int = 1

    # Normalization
    max_dimension: int = 1920
    webp_quality: int = Field(85, ge=1, le=100)

    # API
    cors_origins: Annotated[List[str], NoDecode] = ["*"]
    log_level: str = "INFO"
    log_format: str = "structured"

    @field_validator(
        "presign_ttl_seconds", "max_items", "max_batch_bytes", "item_concurrency", "max_dimension"
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be a positive integer")
        return v

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_origins(cls, v):
        """Accept a JSON list or a comma-separated string."""
        if not isinstance(v, str):
            return v
        if v.strip().startswith("["):
            return json.loads(v)
        return [origin.strip() for origin in v.split(",") if origin.strip()]

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        if v.lower() not in {"structured", "simple"}:
            raise ValueError("LOG_FORMAT must be one of structured|simple")
        return v.lower()

    def require_storage(self) -> None:
        """Fail fast when the bucket is not configured."""
        if not self.s3_bucket:
            raise ConfigurationError("S3_BUCKET is required")

    def require_jwt_secret(self) -> str:
        if not self.jwt_secret:
            raise ConfigurationError("JWT_SECRET is required")
        return self.jwt_secret


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings to avoid reparsing env on every call."""
    return Settings()

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Secrets(BaseSettings):
    """Secrets configuration, loaded from the environment or a secrets management service."""

    model_config = SettingsConfigDict(
        env_prefix="REELHOST_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    jwt_secret: str = Field(default="change-me", description="Signing secret for bearer token validation.")
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None

    @classmethod
    def from_settings(cls, settings: "Settings") -> "Secrets":
        return cls()


class Settings(BaseSettings):
    """Centralised runtime configuration for the Reelhost API."""

    model_config = SettingsConfigDict(
        env_prefix="REELHOST_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "Reelhost API"
    environment: str = Field(default="development", description="Deployment environment label.")
    version: str = Field(default="0.1.0", description="API version for metadata and OpenAPI.")
    log_level: str = Field(default="info")

    database_url: str = Field(
        default="sqlite+aiosqlite:///./reelhost.db",
        description="SQLAlchemy compatible DSN.",
    )

    assets_root: Path = Field(default_factory=lambda: Path("assets"), description="Root for staged uploads and disk thumbnails.")
    public_base_url: str = Field(default="http://localhost:8091", description="Externally visible base URL of this API.")

    storage_backend: Literal["local", "s3"] = Field(default="local", description="Active object store implementation.")
    local_storage_base_path: Path | None = Field(
        default=None,
        description="Override base path for local object storage (defaults to <assets_root>/objects).",
    )
    s3_bucket: Optional[str] = None
    s3_region: str = Field(default="us-east-1")
    s3_endpoint_url: Optional[str] = Field(default=None, description="Custom endpoint for S3 compatible stores (MinIO, R2).")
    cdn_distribution_url: Optional[str] = Field(default=None, description="CDN host used for public video URLs when set.")
    s3_max_attempts: int = Field(default=3, ge=2, description="Total attempts per S3 request, including the first.")
    s3_multipart_chunksize: int = Field(default=5 * 1024 * 1024, ge=5 * 1024 * 1024, description="Part size for multipart uploads.")
    s3_max_concurrency: int = Field(default=10, ge=1, description="Parts uploaded in parallel by the transfer manager.")

    max_video_upload_bytes: int = Field(default=1 << 30, description="Hard limit for video uploads.")
    max_thumbnail_upload_bytes: int = Field(default=10 << 20, description="Hard limit for thumbnail uploads.")

    thumbnail_store: Literal["memory", "disk"] = Field(default="memory", description="Where uploaded thumbnails are kept.")
    thumbnail_cache_max_entries: int = Field(default=1024, ge=1, description="Capacity of the in-memory thumbnail store.")

    ffprobe_binary: str = Field(default="ffprobe")
    ffmpeg_binary: str = Field(default="ffmpeg")

    jwt_algorithm: str = Field(default="HS256", description="Algorithm used for JWT tokens.")
    jwt_issuer: Optional[str] = None
    jwt_audience: Optional[str] = None

    secrets: Secrets = Field(default_factory=Secrets, description="Holds sensitive configuration.")

    @property
    def environment_lower(self) -> str:
        return self.environment.lower()

    @property
    def staging_dir(self) -> Path:
        return Path(self.assets_root) / "tmp"

    @property
    def thumbnail_dir(self) -> Path:
        return Path(self.assets_root) / "thumbnails"

    @property
    def object_storage_path(self) -> Path:
        return Path(self.local_storage_base_path or Path(self.assets_root) / "objects")


@lru_cache()
def get_settings() -> Settings:
    load_dotenv(".env", override=False)

    _ENV_ALIAS_MAP = {
        "REELHOST_ENV": "REELHOST_ENVIRONMENT",
        "REELHOST_DB_URL": "REELHOST_DATABASE_URL",
    }

    for source, target in _ENV_ALIAS_MAP.items():
        value = os.getenv(source)
        if value:
            os.environ[target] = value

    settings = Settings()

    # In a real application, you would fetch secrets from a secure vault
    # instead of just loading them from the environment.
    secrets = Secrets.from_settings(settings)

    if settings.environment == "production" and secrets.jwt_secret == "change-me":
        raise ValueError("Production environment must have a non-default JWT secret.")
    if settings.storage_backend == "s3" and not settings.s3_bucket:
        raise ValueError("REELHOST_S3_BUCKET must be set when the s3 storage backend is active.")

    settings.secrets = secrets
    return settings


__all__ = ["Settings", "Secrets", "get_settings"]

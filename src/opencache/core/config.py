"""OpenCache configuration.

Application settings loaded from environment variables with OPENCACHE_ prefix.

Example:
    >>> from opencache.core.config import get_settings
    >>> settings = get_settings(log_level="DEBUG")
    >>> settings.log_level
    'DEBUG'
    >>> settings.storage_backend
    'local'
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

StorageType = Literal["local", "s3", "github-releases"]


class Settings(BaseSettings):
    """Application settings.

    Loads from environment variables with OPENCACHE_ prefix.

    Example:
        >>> from opencache.core.config import Settings
        >>> s = Settings(storage_backend="github-releases", github_owner="acme")
        >>> s.github_owner
        'acme'
        >>> s.github_release_tag
        'nix-cache'
    """

    model_config = SettingsConfigDict(
        env_prefix="OPENCACHE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Storage
    storage_backend: StorageType = Field(default="local", description="Storage backend type")
    local_storage_path: Path = Field(
        default=Path("./data"),
        description="Directory for narinfo files (and NARs with the local backend)",
    )

    # GitHub Releases
    github_token: str | None = Field(default=None, description="Token used for the GitHub API")
    github_owner: str | None = Field(default=None, description="Repository owner")
    github_repo: str | None = Field(default=None, description="Repository name")
    github_release_tag: str = Field(default="nix-cache", description="Release holding NAR assets")
    github_api_url: str = Field(default="https://api.github.com")
    github_uploads_url: str = Field(default="https://uploads.github.com")
    github_download_host: str = Field(default="github.com")
    max_asset_pages: int | None = Field(
        default=None,
        ge=1,
        description="Asset listing pages to scan per lookup (None = all)",
    )
    request_timeout: float = Field(default=60.0, ge=1.0)

    # S3
    s3_bucket: str | None = Field(default=None)
    s3_region: str | None = Field(default=None)
    s3_endpoint_url: str | None = Field(default=None)
    s3_prefix: str = Field(default="", description="Key prefix inside the bucket")
    s3_public_url: str | None = Field(default=None, description="Public base URL for NAR downloads")

    # Static export
    store_dir: str = Field(default="/nix/store")
    priority: int = Field(default=30, ge=0, description="Lower is preferred by Nix clients")
    static_output_dir: Path = Field(default=Path("./public"))

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="console", description="Log format: json or console")

    @property
    def narinfo_dir(self) -> Path:
        """Directory holding the locally persisted narinfo files."""
        return self.local_storage_path / "narinfo"


def get_settings(**overrides: Any) -> Settings:
    """Get settings with optional overrides.

    Example:
        >>> from opencache.core.config import get_settings
        >>> s = get_settings(priority=40)
        >>> s.priority
        40
    """
    return Settings(**overrides)

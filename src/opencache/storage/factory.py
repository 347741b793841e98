"""
Storage Factory - backend selection from configuration.

Usage:
    from opencache.storage import create_storage

    # From OPENCACHE_* environment variables
    storage = create_storage()

    # Explicit overrides
    storage = create_storage(
        storage_backend="github-releases",
        github_token="...",
        github_owner="acme",
        github_repo="cache",
    )

    async with storage:
        await storage.put_narinfo(hash, text)
"""

from __future__ import annotations

import logging
from typing import Any

from opencache.core.config import Settings, get_settings
from opencache.core.exceptions import ConfigurationError
from opencache.protocols.storage import StorageBackend

logger = logging.getLogger(__name__)


def _require(settings: Settings, *names: str) -> None:
    missing = [name for name in names if not getattr(settings, name)]
    if missing:
        env = ", ".join(f"OPENCACHE_{name.upper()}" for name in missing)
        raise ConfigurationError(
            f"Storage backend {settings.storage_backend!r} requires {env}"
        )


def create_storage(settings: Settings | None = None, **overrides: Any) -> StorageBackend:
    """
    Create the configured storage backend.

    Args:
        settings: Settings instance (default: loaded from environment)
        **overrides: Override specific settings

    Returns:
        LocalStorage, S3Storage or GitHubReleasesStorage

    Raises:
        ConfigurationError: Required settings for the backend are missing
    """
    if settings is None:
        settings = get_settings(**overrides)
    elif overrides:
        settings = settings.model_copy(update=overrides)

    backend = settings.storage_backend
    logger.debug(f"Creating {backend} storage backend")

    if backend == "local":
        from opencache.storage.local import LocalStorage

        return LocalStorage(settings.local_storage_path)

    elif backend == "s3":
        from opencache.storage.s3 import S3Storage

        _require(settings, "s3_bucket")
        return S3Storage(
            settings.s3_bucket,
            region=settings.s3_region,
            endpoint_url=settings.s3_endpoint_url,
            prefix=settings.s3_prefix,
            public_url=settings.s3_public_url,
        )

    elif backend == "github-releases":
        from opencache.storage.github_releases import GitHubReleasesStorage

        _require(settings, "github_token", "github_owner", "github_repo")
        return GitHubReleasesStorage(
            token=settings.github_token,
            owner=settings.github_owner,
            repo=settings.github_repo,
            release_tag=settings.github_release_tag,
            local_path=settings.local_storage_path,
            api_url=settings.github_api_url,
            uploads_url=settings.github_uploads_url,
            download_host=settings.github_download_host,
            timeout=settings.request_timeout,
            max_asset_pages=settings.max_asset_pages,
        )

    else:
        raise ConfigurationError(f"Unknown storage backend: {backend}")


def storage_from_env() -> StorageBackend:
    """
    Create storage from environment variables.

    Shorthand for create_storage(Settings())
    """
    return create_storage(Settings())

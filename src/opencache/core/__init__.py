"""Core configuration, errors and logging."""

from opencache.core.config import Settings, StorageType, get_settings
from opencache.core.exceptions import (
    AssetUploadError,
    ConfigurationError,
    OpenCacheError,
    ReleaseError,
    RemoteCatalogError,
    StorageError,
)
from opencache.core.logging import configure_logging

__all__ = [
    # Configuration
    "Settings",
    "StorageType",
    "get_settings",
    # Errors
    "OpenCacheError",
    "StorageError",
    "ConfigurationError",
    "RemoteCatalogError",
    "ReleaseError",
    "AssetUploadError",
    # Logging
    "configure_logging",
]

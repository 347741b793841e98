"""
OpenCache - Nix binary cache storage.

OpenCache persists Nix binary cache artifacts (NAR payloads and their
narinfo metadata) through interchangeable storage backends, and exports the
metadata as a static site whose NAR requests redirect to GitHub release
downloads.

Key Features:
- Protocol-based design (swap backends through configuration)
- GitHub Releases backend: NARs as release assets, narinfo kept locally
- Local filesystem and S3 backends
- Static site export for Cloudflare Pages, GitHub Pages, Netlify

Quick Start:
    >>> from opencache import create_storage
    >>> storage = create_storage(
    ...     storage_backend="github-releases",
    ...     github_token="...",
    ...     github_owner="acme",
    ...     github_repo="cache",
    ... )
    >>> async with storage:
    ...     await storage.put_nar_stream("abc.nar.xz", stream)
"""

# Configuration and errors
from opencache.core.config import Settings, get_settings
from opencache.core.exceptions import (
    AssetUploadError,
    ConfigurationError,
    OpenCacheError,
    ReleaseError,
    RemoteCatalogError,
    StorageError,
)
from opencache.core.logging import configure_logging

# Release catalog
from opencache.catalog.github import ReleaseCatalog
from opencache.models.catalog import AssetLookup, LookupStatus, Release, ReleaseAsset

# Protocols
from opencache.protocols.storage import StorageBackend
from opencache.protocols.upload import PreparedUpload, UploadStrategy

# Storage backends
from opencache.storage.factory import create_storage, storage_from_env
from opencache.storage.github_releases import GitHubReleasesStorage
from opencache.storage.local import LocalStorage
from opencache.storage.upload import BufferedUpload, read_stream, stream_bytes

# Static export
from opencache.static.site import StaticSiteResult, generate_static_site

# S3 storage (install with: pip install opencache[s3])
try:
    from opencache.storage.s3 import S3Storage
except ImportError:
    S3Storage = None  # type: ignore[misc,assignment]

__version__ = "0.1.0"

__all__ = [
    # Configuration
    "Settings",
    "get_settings",
    "configure_logging",
    # Errors
    "OpenCacheError",
    "StorageError",
    "ConfigurationError",
    "RemoteCatalogError",
    "ReleaseError",
    "AssetUploadError",
    # Protocols
    "StorageBackend",
    "UploadStrategy",
    "PreparedUpload",
    # Catalog
    "ReleaseCatalog",
    "Release",
    "ReleaseAsset",
    "AssetLookup",
    "LookupStatus",
    # Storage
    "create_storage",
    "storage_from_env",
    "LocalStorage",
    "GitHubReleasesStorage",
    "S3Storage",
    "BufferedUpload",
    "read_stream",
    "stream_bytes",
    # Static export
    "generate_static_site",
    "StaticSiteResult",
    # Version
    "__version__",
]

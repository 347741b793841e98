"""Remote catalogs holding NAR payloads."""

from opencache.catalog.github import AssetStream, ReleaseCatalog, github_headers

__all__ = [
    "AssetStream",
    "ReleaseCatalog",
    "github_headers",
]

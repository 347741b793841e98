"""Data models."""

from opencache.models.catalog import (
    AssetLookup,
    CatalogModel,
    LookupStatus,
    Release,
    ReleaseAsset,
)

__all__ = [
    "AssetLookup",
    "CatalogModel",
    "LookupStatus",
    "Release",
    "ReleaseAsset",
]

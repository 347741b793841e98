"""GitHub release catalog models.

Example:
    >>> from opencache.models.catalog import ReleaseAsset
    >>> asset = ReleaseAsset.model_validate({
    ...     "id": 7,
    ...     "name": "abc.nar.xz",
    ...     "url": "https://api.github.com/repos/acme/cache/releases/assets/7",
    ...     "uploader": {"login": "bot"},
    ... })
    >>> asset.name
    'abc.nar.xz'
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class CatalogModel(BaseModel):
    """Base model for API payloads; unknown fields are dropped."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        extra="ignore",
    )


class Release(CatalogModel):
    """A GitHub release acting as the NAR container."""

    id: int
    tag_name: str
    name: str | None = None
    draft: bool = False
    prerelease: bool = False


class ReleaseAsset(CatalogModel):
    """One named asset attached to a release."""

    id: int
    name: str
    url: str = Field(..., description="API URL; fetch with Accept: application/octet-stream")
    browser_download_url: str | None = None
    size: int = 0
    content_type: str = "application/octet-stream"


class LookupStatus(str, Enum):
    """Outcome of an asset search.

    Example:
        >>> LookupStatus.UNAVAILABLE.value
        'unavailable'
    """

    FOUND = "found"
    MISSING = "missing"  # Listing succeeded, no asset of that name
    UNAVAILABLE = "unavailable"  # Listing failed, outcome unknown


@dataclass(frozen=True)
class AssetLookup:
    """Tagged result of ``ReleaseCatalog.lookup_asset``.

    Separates a confirmed miss from a failed listing so callers that care
    about degraded reads can tell them apart.

    Example:
        >>> from opencache.models.catalog import AssetLookup
        >>> AssetLookup.missing().found
        False
        >>> AssetLookup.unavailable("503 Service Unavailable").error
        '503 Service Unavailable'
    """

    status: LookupStatus
    asset: ReleaseAsset | None = None
    error: str | None = None

    @property
    def found(self) -> bool:
        return self.status is LookupStatus.FOUND

    @classmethod
    def hit(cls, asset: ReleaseAsset) -> AssetLookup:
        return cls(status=LookupStatus.FOUND, asset=asset)

    @classmethod
    def missing(cls) -> AssetLookup:
        return cls(status=LookupStatus.MISSING)

    @classmethod
    def unavailable(cls, error: str) -> AssetLookup:
        return cls(status=LookupStatus.UNAVAILABLE, error=error)

"""GitHub Releases storage backend.

NAR files are stored as assets of a single GitHub release; narinfo files stay
on the local filesystem so they can later be exported as a static site.

Layout:
    GitHub release assets:  <filename>                   (NAR files)
    Local filesystem:       <local_path>/narinfo/<hash>.narinfo

Example:
    >>> import tempfile
    >>> from opencache.storage.github_releases import GitHubReleasesStorage
    >>> with tempfile.TemporaryDirectory() as tmpdir:
    ...     storage = GitHubReleasesStorage(
    ...         token="t0ken",
    ...         owner="acme",
    ...         repo="cache",
    ...         release_tag="v1 release",
    ...         local_path=tmpdir,
    ...     )
    ...     storage.nar_download_url("abc123.nar")
    'https://github.com/acme/cache/releases/download/v1%20release/abc123.nar'
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterable, AsyncIterator
from pathlib import Path

import httpx

from opencache.catalog.github import ReleaseCatalog, github_headers
from opencache.http.client import HttpClient
from opencache.protocols.upload import UploadStrategy
from opencache.storage.narinfo import NarinfoDirectory
from opencache.storage.upload import BufferedUpload

logger = logging.getLogger(__name__)


class GitHubReleasesStorage:
    """Binary cache backend on top of GitHub release assets.

    The release is created lazily on first use and its id is cached for the
    lifetime of this instance. Asset listings are never cached, so every
    ``has_nar``/``get_nar_stream`` call sees the current state of the release.

    Overwriting a NAR deletes the old asset and uploads the new one. Another
    process reading the same filename in between may briefly see no asset.

    Args:
        token: GitHub token with ``contents: write`` on the repository.
        owner: Repository owner.
        repo: Repository name.
        release_tag: Tag of the release holding NAR assets.
        local_path: Directory for narinfo files.
        api_url: GitHub REST API base URL.
        uploads_url: GitHub asset upload base URL.
        download_host: Host serving public release downloads.
        timeout: HTTP timeout in seconds.
        max_asset_pages: Listing pages scanned per asset lookup (None = all).
        upload_strategy: How NAR streams are staged before upload.
        transport: Custom httpx transport, mainly for tests.
    """

    def __init__(
        self,
        token: str | None,
        owner: str,
        repo: str,
        release_tag: str,
        local_path: str | Path,
        *,
        api_url: str = "https://api.github.com",
        uploads_url: str = "https://uploads.github.com",
        download_host: str = "github.com",
        timeout: float = 60.0,
        max_asset_pages: int | None = None,
        upload_strategy: UploadStrategy | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.local_path = Path(local_path)
        self.narinfo = NarinfoDirectory(self.local_path / "narinfo")

        client = HttpClient(
            base_url=api_url,
            headers=github_headers(token),
            timeout=timeout,
            transport=transport,
        )
        self.catalog = ReleaseCatalog(
            client,
            owner,
            repo,
            release_tag,
            uploads_url=uploads_url,
            download_host=download_host,
            max_pages=max_asset_pages,
        )
        self._uploads = upload_strategy or BufferedUpload()

    @property
    def owner(self) -> str:
        return self.catalog.owner

    @property
    def repo(self) -> str:
        return self.catalog.repo

    @property
    def release_tag(self) -> str:
        return self.catalog.tag

    async def initialize(self) -> None:
        """No-op; the narinfo directory exists from construction."""

    async def close(self) -> None:
        """Close the HTTP connection pool."""
        await self.catalog.close()

    async def __aenter__(self) -> GitHubReleasesStorage:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # --- narinfo (local filesystem) ---

    async def has_narinfo(self, hash: str) -> bool:
        return self.narinfo.exists(hash)

    async def get_narinfo(self, hash: str) -> str | None:
        return self.narinfo.read(hash)

    async def put_narinfo(self, hash: str, content: str) -> None:
        self.narinfo.write(hash, content)

    # --- NAR files (release assets) ---

    async def has_nar(self, filename: str) -> bool:
        return await self.catalog.find_asset(filename) is not None

    async def get_nar_stream(self, filename: str) -> AsyncIterator[bytes] | None:
        """Stream a NAR from its release asset.

        Returns None when the asset is missing, the listing failed or was
        truncated, or the download was refused. The returned stream must be
        consumed or closed with ``aclose()``.
        """
        asset = await self.catalog.find_asset(filename)
        if asset is None:
            return None
        return await self.catalog.open_asset(asset)

    async def put_nar_stream(self, filename: str, stream: AsyncIterable[bytes]) -> None:
        """Upload a NAR, replacing an existing asset of the same name.

        Raises:
            ReleaseError: The release could not be resolved or created.
            AssetUploadError: GitHub rejected the upload.
        """
        await self.catalog.resolve_release()
        prepared = await self._uploads.prepare(stream)

        # The page cap does not apply here: a missed duplicate makes the upload fail.
        existing = await self.catalog.find_asset(filename, exhaustive=True)
        if existing is not None:
            logger.debug(f"Replacing existing asset {filename!r} (id {existing.id})")
            await self.catalog.delete_asset(existing.id)

        await self.catalog.upload_asset(filename, prepared.content, prepared.size)
        logger.info(f"Stored NAR {filename!r} ({prepared.size} bytes)")

    def nar_download_url(self, filename: str) -> str:
        """Public download URL; valid without authentication once uploaded."""
        return self.catalog.download_url(filename)

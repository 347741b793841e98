"""GitHub release catalog.

A single GitHub release, identified by owner/repo/tag, serves as the
container for NAR assets. The release is looked up by tag and created on the
first miss; its id is then memoised on the catalog instance. Assets are
located by listing the release and scanning for a name, since GitHub offers
no lookup by asset name.

Read paths are fail-soft: a failed listing or download is logged and reported
as absent. Release resolution and uploads raise.

Example:
    >>> from opencache.catalog.github import github_headers
    >>> github_headers("t0ken")["Authorization"]
    'Bearer t0ken'
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from opencache.core.exceptions import AssetUploadError, ReleaseError
from opencache.http.client import HttpClient, HttpClientError
from opencache.models.catalog import AssetLookup, Release, ReleaseAsset
from opencache.utils.urls import encode_component, release_download_base_url

logger = logging.getLogger(__name__)

GITHUB_API_VERSION = "2022-11-28"
DEFAULT_PAGE_SIZE = 100
RELEASE_BODY = "Nix binary cache NAR files managed by OpenCache."


def github_headers(token: str | None) -> dict[str, str]:
    """Default headers for GitHub REST API calls."""
    headers = {
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": GITHUB_API_VERSION,
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


class ReleaseCatalog:
    """Lookup-or-create access to one release and its assets.

    Args:
        client: HTTP client with the API base URL and auth headers set.
        owner: Repository owner.
        repo: Repository name.
        tag: Release tag holding the assets.
        uploads_url: Base URL of the asset upload host.
        download_host: Host serving public release downloads.
        page_size: Assets requested per listing page.
        max_pages: Listing pages scanned per lookup (None = until exhausted).

    Example:
        >>> from opencache.http import HttpClient
        >>> catalog = ReleaseCatalog(HttpClient(), "acme", "cache", "v1 release")
        >>> catalog.download_url("abc123.nar")
        'https://github.com/acme/cache/releases/download/v1%20release/abc123.nar'
    """

    def __init__(
        self,
        client: HttpClient,
        owner: str,
        repo: str,
        tag: str,
        *,
        uploads_url: str = "https://uploads.github.com",
        download_host: str = "github.com",
        page_size: int = DEFAULT_PAGE_SIZE,
        max_pages: int | None = None,
    ) -> None:
        self._client = client
        self.owner = owner
        self.repo = repo
        self.tag = tag
        self.uploads_url = uploads_url.rstrip("/")
        self.download_host = download_host
        self.page_size = page_size
        self.max_pages = max_pages
        self._release_id: int | None = None

    @property
    def release_id(self) -> int | None:
        """Memoised release id, or None before the first resolution."""
        return self._release_id

    @property
    def download_base_url(self) -> str:
        return release_download_base_url(self.download_host, self.owner, self.repo, self.tag)

    def download_url(self, filename: str) -> str:
        """Public download URL of an asset. No network call is made."""
        return f"{self.download_base_url}/{encode_component(filename)}"

    @property
    def _repo_path(self) -> str:
        return f"/repos/{self.owner}/{self.repo}"

    async def close(self) -> None:
        await self._client.close()

    # --- Release ---

    async def resolve_release(self) -> int:
        """Return the release id, creating the release on a lookup miss.

        Concurrent first calls on one instance may both miss and both try to
        create the release. A create rejected with 422 (tag taken) is followed
        by one more lookup.

        Raises:
            ReleaseError: Lookup failed with anything but 404, or create failed.
        """
        if self._release_id is not None:
            return self._release_id

        release = await self._lookup_release()
        if release is None:
            release = await self._create_release()

        self._release_id = release.id
        return release.id

    async def _lookup_release(self) -> Release | None:
        url = f"{self._repo_path}/releases/tags/{encode_component(self.tag)}"
        response = await self._send_release_request("GET", url)

        if response.status_code == 404:
            return None
        if not response.is_success:
            raise ReleaseError(
                f"Failed to look up GitHub release {self.tag!r}",
                status_code=response.status_code,
                body=response.text,
            )
        return Release.model_validate(response.json())

    async def _create_release(self) -> Release:
        payload = {
            "tag_name": self.tag,
            "name": f"Nix Binary Cache ({self.tag})",
            "body": RELEASE_BODY,
            "draft": False,
            "prerelease": False,
        }
        response = await self._send_release_request(
            "POST", f"{self._repo_path}/releases", json=payload
        )

        if response.status_code == 422:
            existing = await self._lookup_release()
            if existing is not None:
                logger.info(f"GitHub release {self.tag!r} created concurrently, using id {existing.id}")
                return existing

        if not response.is_success:
            raise ReleaseError(
                "Failed to create GitHub release",
                status_code=response.status_code,
                body=response.text,
            )

        release = Release.model_validate(response.json())
        logger.info(f"Created GitHub release {self.tag!r} (id {release.id})")
        return release

    async def _send_release_request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.request(method, url, **kwargs)
        except HttpClientError as e:
            raise ReleaseError(f"GitHub release request failed: {e.reason}") from e

    # --- Assets ---

    async def lookup_asset(self, filename: str, *, exhaustive: bool = False) -> AssetLookup:
        """Search the release for an asset named ``filename``.

        Follows ``Link: rel="next"`` pagination until the asset is found or
        the listing ends. Unless ``exhaustive`` is set, at most ``max_pages``
        pages are scanned; a listing cut short by that cap is reported as
        unavailable, never as missing.

        Raises:
            ReleaseError: The release could not be resolved.
        """
        release_id = await self.resolve_release()
        url = f"{self._repo_path}/releases/{release_id}/assets"
        params: dict[str, Any] | None = {"per_page": self.page_size}
        pages = 0

        while True:
            try:
                response = await self._client.get(url, params=params)
            except HttpClientError as e:
                logger.warning(f"Listing assets of release {release_id} failed: {e.reason}")
                return AssetLookup.unavailable(e.reason)

            if not response.is_success:
                error = f"{response.status_code} {response.reason_phrase}"
                logger.warning(f"Listing assets of release {release_id} failed: {error}")
                return AssetLookup.unavailable(error)

            try:
                assets = [ReleaseAsset.model_validate(item) for item in response.json()]
            except (TypeError, ValueError) as e:
                logger.warning(f"Unexpected asset listing for release {release_id}: {e}")
                return AssetLookup.unavailable(str(e))

            for asset in assets:
                if asset.name == filename:
                    return AssetLookup.hit(asset)

            next_link = response.links.get("next")
            if next_link is None:
                return AssetLookup.missing()

            pages += 1
            if not exhaustive and self.max_pages is not None and pages >= self.max_pages:
                error = f"asset listing truncated after {pages} pages"
                logger.warning(f"Looking up {filename!r} in release {release_id}: {error}")
                return AssetLookup.unavailable(error)

            url = next_link["url"]
            params = None

    async def find_asset(self, filename: str, *, exhaustive: bool = False) -> ReleaseAsset | None:
        """Return the asset named ``filename``, or None if missing or unknown."""
        lookup = await self.lookup_asset(filename, exhaustive=exhaustive)
        return lookup.asset

    async def open_asset(self, asset: ReleaseAsset) -> AssetStream | None:
        """Stream an asset's bytes, or None if the download fails.

        The stream holds an open connection until it is exhausted or
        ``aclose()`` is called; callers that stop early must close it.
        """
        try:
            response = await self._client.get(
                asset.url,
                headers={"Accept": "application/octet-stream"},
                stream=True,
            )
        except HttpClientError as e:
            logger.warning(f"Downloading asset {asset.name!r} failed: {e.reason}")
            return None

        if not response.is_success:
            logger.warning(f"Downloading asset {asset.name!r} failed: {response.status_code}")
            await response.aclose()
            return None

        return AssetStream(response)

    async def delete_asset(self, asset_id: int) -> bool:
        """Delete an asset. Failures are logged and reported as False."""
        url = f"{self._repo_path}/releases/assets/{asset_id}"
        try:
            response = await self._client.delete(url)
        except HttpClientError as e:
            logger.warning(f"Deleting asset {asset_id} failed: {e.reason}")
            return False

        if not response.is_success:
            logger.warning(f"Deleting asset {asset_id} failed: {response.status_code} {response.text}")
            return False
        return True

    async def upload_asset(self, filename: str, content: bytes, size: int) -> ReleaseAsset:
        """Upload ``content`` as an asset named ``filename``.

        Raises:
            ReleaseError: The release could not be resolved.
            AssetUploadError: The upload was rejected or never completed.
        """
        release_id = await self.resolve_release()
        url = f"{self.uploads_url}{self._repo_path}/releases/{release_id}/assets"
        try:
            response = await self._client.post(
                url,
                params={"name": filename},
                content=content,
                headers={
                    "Content-Type": "application/octet-stream",
                    "Content-Length": str(size),
                },
            )
        except HttpClientError as e:
            raise AssetUploadError(f"Failed to upload release asset {filename!r}: {e.reason}") from e

        if not response.is_success:
            raise AssetUploadError(
                "Failed to upload release asset",
                status_code=response.status_code,
                body=response.text,
            )

        asset = ReleaseAsset.model_validate(response.json())
        logger.debug(f"Uploaded asset {filename!r} ({size} bytes) to release {release_id}")
        return asset


class AssetStream:
    """Async iterator over a streamed asset download.

    The response is closed once iteration stops or ``aclose()`` is called.
    Usable as an async context manager.
    """

    def __init__(self, response: httpx.Response) -> None:
        self._response = response
        self._chunks = response.aiter_bytes()

    @property
    def closed(self) -> bool:
        return self._response.is_closed

    def __aiter__(self) -> AssetStream:
        return self

    async def __anext__(self) -> bytes:
        try:
            return await self._chunks.__anext__()
        except BaseException:
            await self.aclose()
            raise

    async def aclose(self) -> None:
        await self._response.aclose()

    async def __aenter__(self) -> AssetStream:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

"""Tests for ReleaseCatalog.

Tests cover:
- Release lookup, lazy creation and memoisation
- Create race recovery (422 followed by lookup)
- Fatal release errors
- Asset search with pagination and fail-soft listings
- Best-effort deletes, uploads and downloads
"""

from __future__ import annotations

import pytest

from opencache.catalog.github import ReleaseCatalog, github_headers
from opencache.core.exceptions import AssetUploadError, ReleaseError
from opencache.http.client import HttpClient
from opencache.models.catalog import LookupStatus
from opencache.storage.upload import read_stream

# =============================================================================
# Fixtures
# =============================================================================


def make_catalog(github, tag: str = "v1 release", **kwargs) -> ReleaseCatalog:
    client = HttpClient(
        base_url="https://api.github.com",
        headers=github_headers("t0ken"),
        transport=github.transport(),
    )
    return ReleaseCatalog(client, github.owner, github.repo, tag, **kwargs)


@pytest.fixture
async def catalog(github):
    catalog = make_catalog(github)
    yield catalog
    await catalog.close()


# =============================================================================
# Release Resolution Tests
# =============================================================================


class TestResolveRelease:
    """Tests for lookup-or-create of the release."""

    async def test_existing_release_is_looked_up(self, github, catalog):
        release = github.add_release("v1 release")

        release_id = await catalog.resolve_release()

        assert release_id == release.id
        assert github.create_calls == []

    async def test_missing_release_is_created(self, github, catalog):
        release_id = await catalog.resolve_release()

        assert len(github.create_calls) == 1
        assert github.releases["v1 release"].id == release_id

    async def test_created_release_payload(self, github, catalog):
        import json

        await catalog.resolve_release()

        payload = json.loads(github.create_calls[0].content)
        assert payload["tag_name"] == "v1 release"
        assert payload["name"] == "Nix Binary Cache (v1 release)"
        assert payload["draft"] is False
        assert payload["prerelease"] is False

    async def test_tag_is_percent_encoded_in_lookup(self, github, catalog):
        github.add_release("v1 release")

        await catalog.resolve_release()

        lookup = github.calls("GET", r"/releases/tags/")[0]
        assert lookup.url.raw_path.endswith(b"/releases/tags/v1%20release")

    async def test_release_id_is_memoised(self, github, catalog):
        github.add_release("v1 release")

        first = await catalog.resolve_release()
        second = await catalog.resolve_release()

        assert first == second
        assert catalog.release_id == first
        assert len(github.calls("GET", r"/releases/tags/")) == 1

    async def test_requests_carry_auth_headers(self, github, catalog):
        github.add_release("v1 release")

        await catalog.resolve_release()

        request = github.requests[0]
        assert request.headers["Authorization"] == "Bearer t0ken"
        assert request.headers["X-GitHub-Api-Version"] == "2022-11-28"
        assert request.headers["User-Agent"] == "OpenCache"

    async def test_lookup_failure_is_fatal(self, github, catalog):
        github.lookup_status = 401

        with pytest.raises(ReleaseError) as exc_info:
            await catalog.resolve_release()

        assert exc_info.value.status_code == 401
        assert "lookup refused" in exc_info.value.body
        assert github.create_calls == []

    async def test_create_failure_is_fatal(self, github, catalog):
        github.create_status = 403

        with pytest.raises(ReleaseError) as exc_info:
            await catalog.resolve_release()

        assert exc_info.value.status_code == 403
        assert catalog.release_id is None

    async def test_create_conflict_falls_back_to_lookup(self, github, catalog):
        """A release created between our lookup and create is adopted."""
        original_create = github._create

        def create_after_race(request):
            raced = github.add_release("v1 release")
            response = original_create(request)
            assert response.status_code == 422
            github.raced_id = raced.id
            return response

        github._create = create_after_race

        release_id = await catalog.resolve_release()

        assert release_id == github.raced_id
        assert len(github.calls("GET", r"/releases/tags/")) == 2

    async def test_create_conflict_without_release_raises(self, github, catalog):
        github.create_status = 422

        with pytest.raises(ReleaseError) as exc_info:
            await catalog.resolve_release()

        assert exc_info.value.status_code == 422


# =============================================================================
# Asset Lookup Tests
# =============================================================================


class TestLookupAsset:
    """Tests for asset search."""

    async def test_finds_asset_by_name(self, github, catalog):
        github.add_release("v1 release")
        github.add_asset("v1 release", "other.nar", b"x")
        wanted = github.add_asset("v1 release", "abc123.nar", b"payload")

        lookup = await catalog.lookup_asset("abc123.nar")

        assert lookup.status is LookupStatus.FOUND
        assert lookup.asset.id == wanted.id
        assert lookup.asset.size == len(b"payload")

    async def test_missing_asset(self, github, catalog):
        github.add_release("v1 release")

        lookup = await catalog.lookup_asset("abc123.nar")

        assert lookup.status is LookupStatus.MISSING
        assert await catalog.find_asset("abc123.nar") is None

    async def test_listing_requests_page_of_100(self, github, catalog):
        github.add_release("v1 release")

        await catalog.lookup_asset("abc123.nar")

        listing = github.calls("GET", r"/assets$")[0]
        assert listing.url.params["per_page"] == "100"

    async def test_follows_pagination(self, github):
        github.add_release("v1 release")
        for i in range(5):
            github.add_asset("v1 release", f"{i}.nar", b"x")
        catalog = make_catalog(github, page_size=2)

        lookup = await catalog.lookup_asset("4.nar")

        assert lookup.found
        assert len(github.calls("GET", r"/assets$")) == 3
        await catalog.close()

    async def test_stops_at_first_match(self, github):
        github.add_release("v1 release")
        for i in range(5):
            github.add_asset("v1 release", f"{i}.nar", b"x")
        catalog = make_catalog(github, page_size=2)

        await catalog.lookup_asset("1.nar")

        assert len(github.calls("GET", r"/assets$")) == 1
        await catalog.close()

    async def test_max_pages_truncation_is_unavailable(self, github):
        github.add_release("v1 release")
        for i in range(5):
            github.add_asset("v1 release", f"{i}.nar", b"x")
        catalog = make_catalog(github, page_size=2, max_pages=1)

        lookup = await catalog.lookup_asset("4.nar")

        assert lookup.status is LookupStatus.UNAVAILABLE
        assert lookup.error.startswith("asset listing truncated")
        assert len(github.calls("GET", r"/assets$")) == 1
        await catalog.close()

    async def test_max_pages_on_last_page_is_missing(self, github):
        github.add_release("v1 release")
        for i in range(3):
            github.add_asset("v1 release", f"{i}.nar", b"x")
        catalog = make_catalog(github, page_size=2, max_pages=2)

        lookup = await catalog.lookup_asset("other.nar")

        assert lookup.status is LookupStatus.MISSING
        await catalog.close()

    async def test_exhaustive_lookup_ignores_max_pages(self, github):
        github.add_release("v1 release")
        for i in range(5):
            github.add_asset("v1 release", f"{i}.nar", b"x")
        catalog = make_catalog(github, page_size=2, max_pages=1)

        asset = await catalog.find_asset("4.nar", exhaustive=True)

        assert asset is not None and asset.name == "4.nar"
        assert len(github.calls("GET", r"/assets$")) == 3
        await catalog.close()

    async def test_listing_error_status_is_unavailable(self, github, catalog):
        github.add_release("v1 release")
        github.add_asset("v1 release", "abc123.nar", b"x")
        github.listing_status = 502

        lookup = await catalog.lookup_asset("abc123.nar")

        assert lookup.status is LookupStatus.UNAVAILABLE
        assert lookup.error.startswith("502")
        assert await catalog.find_asset("abc123.nar") is None

    async def test_listing_transport_error_is_unavailable(self, github, catalog):
        github.add_release("v1 release")
        github.listing_error = True

        lookup = await catalog.lookup_asset("abc123.nar")

        assert lookup.status is LookupStatus.UNAVAILABLE

    async def test_lookup_resolves_release_first(self, github, catalog):
        await catalog.lookup_asset("abc123.nar")

        assert len(github.create_calls) == 1


# =============================================================================
# Asset Mutation Tests
# =============================================================================


class TestAssetOperations:
    """Tests for upload, delete and download."""

    async def test_upload_asset(self, github, catalog):
        github.add_release("v1 release")

        asset = await catalog.upload_asset("abc 123.nar", b"payload", 7)

        assert asset.name == "abc 123.nar"
        stored = github.assets_named("v1 release", "abc 123.nar")
        assert stored[0].data == b"payload"

        upload = github.calls("POST", r"/assets$")[0]
        assert upload.url.host == "uploads.github.com"
        assert upload.headers["Content-Type"] == "application/octet-stream"
        assert upload.headers["Content-Length"] == "7"

    async def test_upload_failure_raises_with_status(self, github, catalog):
        github.add_release("v1 release")
        github.upload_status = 500

        with pytest.raises(AssetUploadError) as exc_info:
            await catalog.upload_asset("abc123.nar", b"payload", 7)

        assert exc_info.value.status_code == 500
        assert exc_info.value.body == "upload refused"

    async def test_delete_asset(self, github, catalog):
        github.add_release("v1 release")
        asset = github.add_asset("v1 release", "abc123.nar", b"x")

        assert await catalog.delete_asset(asset.id) is True
        assert github.assets_named("v1 release", "abc123.nar") == []

    async def test_delete_failure_is_reported_not_raised(self, github, catalog):
        github.add_release("v1 release")
        asset = github.add_asset("v1 release", "abc123.nar", b"x")
        github.delete_status = 500

        assert await catalog.delete_asset(asset.id) is False

    async def test_open_asset_follows_redirect(self, github, catalog):
        github.add_release("v1 release")
        github.add_asset("v1 release", "abc123.nar", b"nar bytes")
        asset = await catalog.find_asset("abc123.nar")

        stream = await catalog.open_asset(asset)

        assert await read_stream(stream) == b"nar bytes"

    async def test_unread_asset_stream_can_be_closed(self, github, catalog):
        github.add_release("v1 release")
        github.add_asset("v1 release", "abc123.nar", b"nar bytes")
        asset = await catalog.find_asset("abc123.nar")

        stream = await catalog.open_asset(asset)
        assert not stream.closed
        await stream.aclose()

        assert stream.closed

    async def test_asset_stream_closes_when_exhausted(self, github, catalog):
        github.add_release("v1 release")
        github.add_asset("v1 release", "abc123.nar", b"nar bytes")
        asset = await catalog.find_asset("abc123.nar")

        async with await catalog.open_asset(asset) as stream:
            assert await read_stream(stream) == b"nar bytes"
            assert stream.closed

    async def test_open_asset_failure_returns_none(self, github, catalog):
        github.add_release("v1 release")
        github.add_asset("v1 release", "abc123.nar", b"nar bytes")
        asset = await catalog.find_asset("abc123.nar")
        github.download_status = 403

        assert await catalog.open_asset(asset) is None


# =============================================================================
# URL Tests
# =============================================================================


class TestDownloadUrls:
    """Tests for public download URLs."""

    def test_download_url(self, github):
        catalog = make_catalog(github)

        assert (
            catalog.download_url("abc123.nar")
            == "https://github.com/acme/cache/releases/download/v1%20release/abc123.nar"
        )

    def test_download_url_encodes_filename(self, github):
        catalog = make_catalog(github, tag="v1")

        assert catalog.download_url("a b+c.nar").endswith("/v1/a%20b%2Bc.nar")

    def test_custom_download_host(self, github):
        catalog = make_catalog(github, tag="v1", download_host="git.example.com")

        assert catalog.download_base_url == "https://git.example.com/acme/cache/releases/download/v1"

    def test_no_token_means_no_auth_header(self):
        assert "Authorization" not in github_headers(None)

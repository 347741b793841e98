"""Shared fixtures: an in-memory fake of the GitHub releases API."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field

import httpx
import pytest

API = "api.github.com"
UPLOADS = "uploads.github.com"
OBJECTS = "objects.example.com"


async def _async_body(data: bytes):
    """Yield ``data`` as a streamed body so httpx does not pre-read and close it."""
    yield data


@dataclass
class FakeAsset:
    id: int
    name: str
    data: bytes

    def to_json(self, owner: str, repo: str, tag: str) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "url": f"https://{API}/repos/{owner}/{repo}/releases/assets/{self.id}",
            "browser_download_url": f"https://github.com/{owner}/{repo}/releases/download/{tag}/{self.name}",
            "size": len(self.data),
            "content_type": "application/octet-stream",
            "state": "uploaded",
        }


@dataclass
class FakeRelease:
    id: int
    tag_name: str
    name: str
    assets: list[FakeAsset] = field(default_factory=list)


class FakeGitHub:
    """Enough of the GitHub REST API to exercise release-backed storage.

    Like GitHub, uploads of a name that already exists are rejected with 422,
    so a backend that does not delete first fails loudly.
    """

    def __init__(self, owner: str = "acme", repo: str = "cache") -> None:
        self.owner = owner
        self.repo = repo
        self.releases: dict[str, FakeRelease] = {}
        self.requests: list[httpx.Request] = []
        self._next_id = 1000

        # Failure injection
        self.lookup_status: int | None = None
        self.create_status: int | None = None
        self.listing_status: int | None = None
        self.delete_status: int | None = None
        self.upload_status: int | None = None
        self.download_status: int | None = None
        self.listing_error: bool = False

    # --- helpers for tests ---

    def _new_id(self) -> int:
        self._next_id += 1
        return self._next_id

    def add_release(self, tag: str) -> FakeRelease:
        release = FakeRelease(id=self._new_id(), tag_name=tag, name=f"Release {tag}")
        self.releases[tag] = release
        return release

    def add_asset(self, tag: str, name: str, data: bytes) -> FakeAsset:
        asset = FakeAsset(id=self._new_id(), name=name, data=data)
        self.releases[tag].assets.append(asset)
        return asset

    def assets_named(self, tag: str, name: str) -> list[FakeAsset]:
        return [a for a in self.releases[tag].assets if a.name == name]

    def calls(self, method: str, pattern: str) -> list[httpx.Request]:
        return [
            r for r in self.requests
            if r.method == method and re.search(pattern, r.url.path)
        ]

    @property
    def create_calls(self) -> list[httpx.Request]:
        return [r for r in self.calls("POST", r"/releases$") if r.url.host == API]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    # --- request handling ---

    def _release_by_id(self, release_id: int) -> FakeRelease | None:
        for release in self.releases.values():
            if release.id == release_id:
                return release
        return None

    def _asset_by_id(self, asset_id: int) -> tuple[FakeRelease, FakeAsset] | None:
        for release in self.releases.values():
            for asset in release.assets:
                if asset.id == asset_id:
                    return release, asset
        return None

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host = request.url.host
        path = request.url.path
        prefix = f"/repos/{self.owner}/{self.repo}/releases"

        if host == OBJECTS:
            found = self._asset_by_id(int(path.strip("/")))
            if found is None:
                return httpx.Response(404)
            return httpx.Response(200, content=_async_body(found[1].data))

        if host == UPLOADS:
            match = re.fullmatch(rf"{prefix}/(\d+)/assets", path)
            if match:
                return self._upload(request, int(match.group(1)))
            return httpx.Response(404)

        if request.method == "GET" and path.startswith(f"{prefix}/tags/"):
            if self.lookup_status is not None:
                return httpx.Response(self.lookup_status, text="lookup refused")
            release = self.releases.get(path[len(f"{prefix}/tags/"):])
            if release is None:
                return httpx.Response(404, json={"message": "Not Found"})
            return httpx.Response(200, json=self._release_json(release))

        if request.method == "POST" and path == prefix:
            return self._create(request)

        match = re.fullmatch(rf"{prefix}/(\d+)/assets", path)
        if request.method == "GET" and match:
            return self._list(request, int(match.group(1)))

        match = re.fullmatch(rf"{prefix}/assets/(\d+)", path)
        if match:
            asset_id = int(match.group(1))
            if request.method == "DELETE":
                return self._delete(asset_id)
            if request.method == "GET":
                return self._download(request, asset_id)

        return httpx.Response(404, json={"message": "Not Found"})

    def _release_json(self, release: FakeRelease) -> dict:
        return {
            "id": release.id,
            "tag_name": release.tag_name,
            "name": release.name,
            "draft": False,
            "prerelease": False,
        }

    def _create(self, request: httpx.Request) -> httpx.Response:
        if self.create_status is not None:
            return httpx.Response(self.create_status, text="create refused")
        payload = json.loads(request.content)
        tag = payload["tag_name"]
        if tag in self.releases:
            return httpx.Response(422, json={"message": "Validation Failed", "errors": [{"code": "already_exists"}]})
        release = FakeRelease(id=self._new_id(), tag_name=tag, name=payload["name"])
        self.releases[tag] = release
        return httpx.Response(201, json=self._release_json(release))

    def _list(self, request: httpx.Request, release_id: int) -> httpx.Response:
        if self.listing_error:
            raise httpx.ConnectError("connection refused", request=request)
        if self.listing_status is not None:
            return httpx.Response(self.listing_status, text="listing refused")
        release = self._release_by_id(release_id)
        if release is None:
            return httpx.Response(404)

        per_page = int(request.url.params.get("per_page", 30))
        page = int(request.url.params.get("page", 1))
        start = (page - 1) * per_page
        items = release.assets[start : start + per_page]
        headers = {}
        if start + per_page < len(release.assets):
            next_url = request.url.copy_merge_params({"page": page + 1, "per_page": per_page})
            headers["Link"] = f'<{next_url}>; rel="next"'
        body = [a.to_json(self.owner, self.repo, release.tag_name) for a in items]
        return httpx.Response(200, json=body, headers=headers)

    def _delete(self, asset_id: int) -> httpx.Response:
        if self.delete_status is not None:
            return httpx.Response(self.delete_status, text="delete refused")
        found = self._asset_by_id(asset_id)
        if found is None:
            return httpx.Response(404)
        release, asset = found
        release.assets.remove(asset)
        return httpx.Response(204)

    def _download(self, request: httpx.Request, asset_id: int) -> httpx.Response:
        if self.download_status is not None:
            return httpx.Response(self.download_status)
        if request.headers.get("Accept") != "application/octet-stream":
            return httpx.Response(415)
        if self._asset_by_id(asset_id) is None:
            return httpx.Response(404)
        return httpx.Response(302, headers={"Location": f"https://{OBJECTS}/{asset_id}"})

    def _upload(self, request: httpx.Request, release_id: int) -> httpx.Response:
        if self.upload_status is not None:
            return httpx.Response(self.upload_status, text="upload refused")
        release = self._release_by_id(release_id)
        if release is None:
            return httpx.Response(404)
        name = request.url.params["name"]
        if any(a.name == name for a in release.assets):
            return httpx.Response(422, json={"message": "Validation Failed", "errors": [{"code": "already_exists"}]})
        if int(request.headers["Content-Length"]) != len(request.content):
            return httpx.Response(400, text="length mismatch")
        asset = FakeAsset(id=self._new_id(), name=name, data=request.content)
        release.assets.append(asset)
        return httpx.Response(201, json=asset.to_json(self.owner, self.repo, release.tag_name))


@pytest.fixture
def github() -> FakeGitHub:
    """Fresh fake GitHub API."""
    return FakeGitHub()

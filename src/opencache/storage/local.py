"""Local filesystem storage backend.

Keeps narinfo and NAR files side by side under one root directory.

Layout:
    <root>/narinfo/<hash>.narinfo
    <root>/nar/<filename>

Example:
    >>> import asyncio
    >>> import tempfile
    >>> from opencache.storage.local import LocalStorage
    >>> with tempfile.TemporaryDirectory() as tmpdir:
    ...     storage = LocalStorage(tmpdir)
    ...     asyncio.run(storage.put_narinfo("abc123", "StorePath: /nix/store/abc123-hello\\n"))
    ...     asyncio.run(storage.has_narinfo("abc123"))
    True
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import AsyncIterable, AsyncIterator
from pathlib import Path

from opencache.storage.narinfo import NarinfoDirectory, validate_key
from opencache.storage.upload import DEFAULT_CHUNK_SIZE
from opencache.utils.urls import encode_component


class LocalStorage:
    """Filesystem binary cache backend.

    Best for: development, single-server deployments.

    Args:
        root: Root directory; created if missing.
        chunk_size: Read size for NAR streams.
    """

    def __init__(self, root: str | Path = "./data", chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        self._root = Path(root)
        self._chunk_size = chunk_size
        self.narinfo = NarinfoDirectory(self._root / "narinfo")
        self._nar_dir = self._root / "nar"
        self._nar_dir.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        return self._root

    async def initialize(self) -> None:
        """Recreate directories removed since construction."""
        self.narinfo.path.mkdir(parents=True, exist_ok=True)
        self._nar_dir.mkdir(parents=True, exist_ok=True)

    async def close(self) -> None:
        """Clean up resources (no-op for filesystem)."""

    async def __aenter__(self) -> LocalStorage:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # --- narinfo ---

    async def has_narinfo(self, hash: str) -> bool:
        return self.narinfo.exists(hash)

    async def get_narinfo(self, hash: str) -> str | None:
        return self.narinfo.read(hash)

    async def put_narinfo(self, hash: str, content: str) -> None:
        self.narinfo.write(hash, content)

    # --- NAR files ---

    async def has_nar(self, filename: str) -> bool:
        return self._nar_path(filename).is_file()

    async def get_nar_stream(self, filename: str) -> AsyncIterator[bytes] | None:
        path = self._nar_path(filename)
        try:
            f = path.open("rb")
        except FileNotFoundError:
            return None
        return self._iter_file(f)

    async def _iter_file(self, f) -> AsyncIterator[bytes]:
        with f:
            while chunk := f.read(self._chunk_size):
                yield chunk

    async def put_nar_stream(self, filename: str, stream: AsyncIterable[bytes]) -> None:
        """Write a NAR through a temporary file, then rename into place."""
        path = self._nar_path(filename)
        fd, tmp_name = tempfile.mkstemp(dir=self._nar_dir, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                async for chunk in stream:
                    f.write(chunk)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def nar_download_url(self, filename: str) -> str:
        """Path relative to the cache root; the serving process resolves it."""
        return f"nar/{encode_component(filename)}"

    def _nar_path(self, filename: str) -> Path:
        return self._nar_dir / validate_key(filename)

"""Storage backend protocol.

Defines the interface shared by every binary cache backend: narinfo metadata
keyed by store path hash, and NAR payloads keyed by filename.

Example:
    >>> from opencache.protocols.storage import StorageBackend
    >>> hasattr(StorageBackend, "get_narinfo")
    True
    >>> hasattr(StorageBackend, "put_nar_stream")
    True
"""

from __future__ import annotations

from collections.abc import AsyncIterable, AsyncIterator
from typing import Protocol, runtime_checkable


@runtime_checkable
class StorageBackend(Protocol):
    """Storage backend protocol.

    All storage implementations must implement this interface. A miss is
    always reported as ``None`` or ``False``, never as an exception.

    See Also:
        opencache.storage.local.LocalStorage: Filesystem implementation
        opencache.storage.github_releases.GitHubReleasesStorage: Release assets
    """

    # --- narinfo ---

    async def has_narinfo(self, hash: str) -> bool:
        """Check if a narinfo record exists."""
        ...

    async def get_narinfo(self, hash: str) -> str | None:
        """Get narinfo text, or None if missing."""
        ...

    async def put_narinfo(self, hash: str, content: str) -> None:
        """Store narinfo text, replacing any previous record."""
        ...

    # --- NAR payloads ---

    async def has_nar(self, filename: str) -> bool:
        """Check if a NAR exists."""
        ...

    async def get_nar_stream(self, filename: str) -> AsyncIterator[bytes] | None:
        """Open a NAR as a byte stream, or None if missing.

        The stream may hold a file or connection open; callers that stop
        reading early should ``aclose()`` it.
        """
        ...

    async def put_nar_stream(self, filename: str, stream: AsyncIterable[bytes]) -> None:
        """Store a NAR from a byte stream, replacing any previous payload."""
        ...

    def nar_download_url(self, filename: str) -> str:
        """URL a client can fetch the NAR from."""
        ...

    # --- Lifecycle ---

    async def initialize(self) -> None:
        """Acquire resources."""
        ...

    async def close(self) -> None:
        """Release resources."""
        ...

"""Upload strategies and stream helpers.

Example:
    >>> import asyncio
    >>> from opencache.storage.upload import BufferedUpload, stream_bytes
    >>> prepared = asyncio.run(BufferedUpload().prepare(stream_bytes(b"nar data", chunk_size=3)))
    >>> prepared.size
    8
"""

from __future__ import annotations

from collections.abc import AsyncIterable, AsyncIterator

from opencache.core.exceptions import StorageError
from opencache.protocols.upload import PreparedUpload

DEFAULT_CHUNK_SIZE = 64 * 1024


class BufferedUpload:
    """Reads the whole stream into memory before upload.

    Memory use grows with payload size. ``max_size`` caps it; a stream that
    exceeds the cap raises ``StorageError`` before anything is sent.
    """

    def __init__(self, max_size: int | None = None) -> None:
        self.max_size = max_size

    async def prepare(self, stream: AsyncIterable[bytes]) -> PreparedUpload:
        chunks: list[bytes] = []
        total = 0
        async for chunk in stream:
            total += len(chunk)
            if self.max_size is not None and total > self.max_size:
                raise StorageError(f"Payload exceeds upload limit of {self.max_size} bytes")
            chunks.append(bytes(chunk))

        content = b"".join(chunks)
        return PreparedUpload(content=content, size=len(content))


async def stream_bytes(data: bytes, chunk_size: int = DEFAULT_CHUNK_SIZE) -> AsyncIterator[bytes]:
    """Expose in-memory bytes as an async byte stream."""
    for start in range(0, len(data), chunk_size):
        yield data[start : start + chunk_size]


async def read_stream(stream: AsyncIterable[bytes]) -> bytes:
    """Collect an async byte stream into one bytes object."""
    return b"".join([bytes(chunk) async for chunk in stream])

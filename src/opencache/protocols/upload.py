"""Upload strategy protocol.

Backends that need the payload size up front (release asset uploads) turn an
incoming byte stream into a ``PreparedUpload`` through an ``UploadStrategy``.
Swapping the strategy changes how payloads are staged without touching the
storage contract.
"""

from __future__ import annotations

from collections.abc import AsyncIterable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class PreparedUpload:
    """Payload ready to be sent with an explicit length.

    Example:
        >>> from opencache.protocols.upload import PreparedUpload
        >>> PreparedUpload(content=b"nar", size=3).size
        3
    """

    content: bytes
    size: int


@runtime_checkable
class UploadStrategy(Protocol):
    """Stages a byte stream for upload."""

    async def prepare(self, stream: AsyncIterable[bytes]) -> PreparedUpload:
        """Consume the stream and return the payload to send."""
        ...

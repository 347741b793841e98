"""Local narinfo persistence.

Every backend that keeps narinfo on disk stores one UTF-8 file per cache key
at ``<dir>/<hash>.narinfo``. The static site exporter reads the same layout.

Example:
    >>> import tempfile
    >>> from opencache.storage.narinfo import NarinfoDirectory
    >>> with tempfile.TemporaryDirectory() as tmpdir:
    ...     narinfo = NarinfoDirectory(tmpdir)
    ...     narinfo.write("abc123", "StorePath: /nix/store/abc123-hello\\n")
    ...     narinfo.read("abc123")
    'StorePath: /nix/store/abc123-hello\\n'
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)

NARINFO_SUFFIX = ".narinfo"


def validate_key(key: str) -> str:
    """Reject keys that would escape their directory.

    Example:
        >>> validate_key("abc123")
        'abc123'
        >>> validate_key("../etc/passwd")
        Traceback (most recent call last):
        ValueError: Invalid storage key: '../etc/passwd'
    """
    if not key or key in (".", "..") or "/" in key or "\\" in key or "\0" in key:
        raise ValueError(f"Invalid storage key: {key!r}")
    return key


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """Write ``data`` to ``path`` through a temporary file and rename."""
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


class NarinfoDirectory:
    """Directory of ``<hash>.narinfo`` files.

    The directory is created on construction. Concurrent writers to the
    same hash race; the last rename wins.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.path.mkdir(parents=True, exist_ok=True)

    def path_for(self, hash: str) -> Path:
        return self.path / f"{validate_key(hash)}{NARINFO_SUFFIX}"

    def exists(self, hash: str) -> bool:
        return self.path_for(hash).is_file()

    def read(self, hash: str) -> str | None:
        """Return the narinfo text, or None if there is none or it is unreadable."""
        path = self.path_for(hash)
        try:
            return path.read_bytes().decode("utf-8")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as e:
            logger.warning(f"Ignoring narinfo {path} that is not valid UTF-8: {e}")
            return None

    def write(self, hash: str, content: str) -> None:
        atomic_write_bytes(self.path_for(hash), content.encode("utf-8"))

"""Static binary cache site generation.

Builds a directory that any static host (Cloudflare Pages, GitHub Pages,
Netlify, ...) can serve as a Nix substituter. narinfo files are copied from
local storage; NAR requests are redirected to GitHub release downloads via a
Cloudflare Pages compatible ``_redirects`` file.

Output:
    <output_dir>/nix-cache-info
    <output_dir>/<hash>.narinfo
    <output_dir>/_redirects

Example:
    >>> import asyncio
    >>> import tempfile
    >>> from pathlib import Path
    >>> from opencache.static.site import generate_static_site
    >>> with tempfile.TemporaryDirectory() as tmpdir:
    ...     result = asyncio.run(generate_static_site(
    ...         narinfo_dir=Path(tmpdir) / "narinfo",
    ...         output_dir=Path(tmpdir) / "public",
    ...         owner="acme",
    ...         repo="cache",
    ...         release_tag="v1",
    ...     ))
    ...     result.narinfo_count
    0
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

from opencache.storage.narinfo import NARINFO_SUFFIX
from opencache.utils.urls import release_download_base_url

logger = logging.getLogger(__name__)

CACHE_INFO_FILENAME = "nix-cache-info"
REDIRECTS_FILENAME = "_redirects"
DEFAULT_STORE_DIR = "/nix/store"
DEFAULT_PRIORITY = 30


@dataclass(frozen=True)
class StaticSiteResult:
    """Summary of a static site export."""

    narinfo_count: int
    output_dir: Path
    nar_base_url: str


def render_cache_info(store_dir: str = DEFAULT_STORE_DIR, priority: int = DEFAULT_PRIORITY) -> str:
    """Render the ``nix-cache-info`` file.

    Example:
        >>> print(render_cache_info(), end="")
        StoreDir: /nix/store
        WantMassQuery: 1
        Priority: 30
    """
    return f"StoreDir: {store_dir}\nWantMassQuery: 1\nPriority: {priority}\n"


def render_redirects(nar_base_url: str) -> str:
    """Render the ``_redirects`` rule sending NAR requests to the release.

    Example:
        >>> render_redirects("https://github.com/acme/cache/releases/download/v1")
        '/nar/:filename https://github.com/acme/cache/releases/download/v1/:filename 302\\n'
    """
    return f"/nar/:filename {nar_base_url}/:filename 302\n"


def _list_narinfo_files(narinfo_dir: Path) -> list[Path]:
    try:
        entries = list(narinfo_dir.iterdir())
    except (FileNotFoundError, NotADirectoryError):
        logger.warning(f"narinfo directory {narinfo_dir} does not exist, exporting no records")
        return []
    return sorted(
        (entry for entry in entries if entry.name.endswith(NARINFO_SUFFIX) and entry.is_file()),
        key=lambda entry: entry.name,
    )


async def generate_static_site(
    narinfo_dir: str | Path,
    output_dir: str | Path,
    *,
    owner: str,
    repo: str,
    release_tag: str,
    store_dir: str = DEFAULT_STORE_DIR,
    priority: int = DEFAULT_PRIORITY,
    download_host: str = "github.com",
) -> StaticSiteResult:
    """Generate a static Nix binary cache site.

    The output is fully rewritten on every run; with unchanged narinfo
    files, two runs produce identical directories.

    Args:
        narinfo_dir: Directory holding ``<hash>.narinfo`` files.
        output_dir: Directory to write the site into; created if missing.
        owner: GitHub repository owner hosting the NAR release.
        repo: GitHub repository name.
        release_tag: Tag of the release holding NAR assets.
        store_dir: Nix store directory advertised to clients.
        priority: Substituter priority (lower is preferred).
        download_host: Host serving public release downloads.

    Returns:
        StaticSiteResult with the record count, output directory and NAR base URL.
    """
    narinfo_dir = Path(narinfo_dir)
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    (output_dir / CACHE_INFO_FILENAME).write_text(
        render_cache_info(store_dir, priority), encoding="utf-8", newline="\n"
    )

    narinfo_files = _list_narinfo_files(narinfo_dir)
    for source in narinfo_files:
        shutil.copyfile(source, output_dir / source.name)

    nar_base_url = release_download_base_url(download_host, owner, repo, release_tag)
    (output_dir / REDIRECTS_FILENAME).write_text(
        render_redirects(nar_base_url), encoding="utf-8", newline="\n"
    )

    logger.info(f"Exported {len(narinfo_files)} narinfo files to {output_dir}")
    return StaticSiteResult(
        narinfo_count=len(narinfo_files),
        output_dir=output_dir,
        nar_base_url=nar_base_url,
    )

"""URL helpers.

Example:
    >>> from opencache.utils.urls import release_download_base_url
    >>> release_download_base_url("github.com", "acme", "cache", "v1 release")
    'https://github.com/acme/cache/releases/download/v1%20release'
"""

from __future__ import annotations

from urllib.parse import quote


def encode_component(value: str) -> str:
    """Percent-encode a URL path component.

    Leaves the same characters unescaped as JavaScript's
    ``encodeURIComponent``, so URLs match those produced by other
    binary cache tooling.

    Example:
        >>> encode_component("v1 release")
        'v1%20release'
        >>> encode_component("a/b(c)")
        'a%2Fb(c)'
    """
    return quote(value, safe="!*'()")


def release_download_base_url(host: str, owner: str, repo: str, tag: str) -> str:
    """Public, unauthenticated download base for assets of a GitHub release."""
    return f"https://{host}/{owner}/{repo}/releases/download/{encode_component(tag)}"

"""OpenCache HTTP utilities.

Example:
    >>> from opencache.http import HttpClient
    >>>
    >>> async with HttpClient(base_url="https://api.github.com") as client:
    ...     response = await client.get("/repos/acme/cache/releases")
"""

from opencache.http.client import HttpClient, HttpClientError

__all__ = [
    "HttpClient",
    "HttpClientError",
]

"""Async HTTP client for the release catalog.

Thin wrapper over ``httpx.AsyncClient`` that owns the connection pool,
default headers and transport-level retries. Unlike a generic fetch helper it
never raises for HTTP status codes: callers inspect ``status_code`` because
a 404 from one endpoint is a normal outcome and a fatal error from another.

Example:
    >>> from opencache.http import HttpClient
    >>>
    >>> async with HttpClient(base_url="https://api.github.com") as client:
    ...     response = await client.get("/repos/acme/cache/releases/tags/v1")
    ...     response.status_code
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = frozenset({502, 503, 504})


class HttpClientError(Exception):
    """Raised when a request could not be completed at the transport level."""

    def __init__(self, method: str, url: str, reason: str):
        self.method = method
        self.url = url
        self.reason = reason
        super().__init__(f"{method} {url} failed: {reason}")


class HttpClient:
    """Async HTTP client with default headers and optional retries.

    Retries cover timeouts, connection errors and 502/503/504 responses.
    They are off by default (``max_retries=0``); the retry policy belongs to
    whoever constructs the client.

    Example:
        >>> client = HttpClient(
        ...     base_url="https://api.github.com",
        ...     headers={"Authorization": "Bearer t0ken"},
        ... )
        >>> client.headers["User-Agent"]
        'OpenCache'

    Attributes:
        user_agent: User-Agent header value
        timeout: Default request timeout in seconds
        max_retries: Retry attempts after the first try
    """

    def __init__(
        self,
        base_url: str = "",
        user_agent: str = "OpenCache",
        timeout: float = 60.0,
        max_retries: int = 0,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize HTTP client.

        Args:
            base_url: Base URL for relative requests
            user_agent: User-Agent header
            timeout: Default request timeout
            max_retries: Retry attempts on transport failure
            headers: Additional default headers
            transport: Custom httpx transport (tests use ``httpx.MockTransport``)
        """
        self._base_url = base_url
        self._user_agent = user_agent
        self._timeout = timeout
        self._max_retries = max_retries
        self._extra_headers = headers or {}
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def user_agent(self) -> str:
        """User-Agent header value."""
        return self._user_agent

    @property
    def timeout(self) -> float:
        """Default request timeout in seconds."""
        return self._timeout

    @property
    def max_retries(self) -> int:
        """Retry attempts after the first try."""
        return self._max_retries

    @property
    def headers(self) -> dict[str, str]:
        """Default headers for requests."""
        return {
            "User-Agent": self._user_agent,
            **self._extra_headers,
        }

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Get or create the underlying httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers=self.headers,
                timeout=httpx.Timeout(self._timeout),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> HttpClient:
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def request(
        self,
        method: str,
        url: str,
        *,
        stream: bool = False,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send a request, retrying transport failures if configured.

        Args:
            method: HTTP method
            url: URL (relative to base_url or absolute)
            stream: Leave the body unread; the caller must ``aclose()`` it
            **kwargs: Additional arguments for ``httpx.AsyncClient.build_request``

        Returns:
            The HTTP response, whatever its status code

        Raises:
            HttpClientError: If the request never produced a response
        """
        client = await self._ensure_client()
        last_error: Exception | None = None

        for attempt in range(self._max_retries + 1):
            try:
                request = client.build_request(method, url, **kwargs)
                response = await client.send(request, stream=stream)
            except httpx.TimeoutException as e:
                last_error = e
                reason = f"timeout: {e}"
            except httpx.RequestError as e:
                last_error = e
                reason = f"request error: {e}"
            else:
                if response.status_code in RETRYABLE_STATUS and attempt < self._max_retries:
                    await response.aclose()
                    logger.debug(f"{method} {url} returned {response.status_code}, retrying")
                    await asyncio.sleep(2**attempt)
                    continue
                return response

            if attempt < self._max_retries:
                logger.debug(f"{method} {url} failed ({reason}), retrying")
                await asyncio.sleep(2**attempt)
                continue
            raise HttpClientError(method, url, reason) from last_error

        raise HttpClientError(method, url, f"max retries exceeded: {last_error}")

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        """Make a GET request."""
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        """Make a POST request."""
        return await self.request("POST", url, **kwargs)

    async def delete(self, url: str, **kwargs: Any) -> httpx.Response:
        """Make a DELETE request."""
        return await self.request("DELETE", url, **kwargs)


__all__ = [
    "HttpClient",
    "HttpClientError",
]

"""Custom exceptions.

OpenCache uses a small hierarchy of exceptions. Missing narinfo records and
missing NARs are never errors: backends return ``None`` or ``False`` for them.

Example:
    >>> from opencache.core.exceptions import OpenCacheError, ReleaseError
    >>> err = ReleaseError("lookup failed", status_code=401, body="Bad credentials")
    >>> isinstance(err, OpenCacheError)
    True
    >>> err.status_code
    401
"""

from __future__ import annotations


class OpenCacheError(Exception):
    """Base exception for OpenCache.

    Example:
        >>> from opencache.core.exceptions import OpenCacheError
        >>> str(OpenCacheError("something went wrong"))
        'something went wrong'
    """


class StorageError(OpenCacheError):
    """Storage operation failed."""


class ConfigurationError(OpenCacheError):
    """Configuration is invalid or incomplete.

    Example:
        >>> from opencache.core.exceptions import ConfigurationError
        >>> raise ConfigurationError("missing token")  # doctest: +IGNORE_EXCEPTION_DETAIL
        Traceback (most recent call last):
        ConfigurationError: missing token
    """


class RemoteCatalogError(StorageError):
    """The remote release catalog rejected a request.

    Carries the HTTP status code and response body when the failure came
    from a response. ``status_code`` is ``None`` for transport failures.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str = "",
    ) -> None:
        self.status_code = status_code
        self.body = body
        if status_code is not None:
            message = f"{message}: {status_code} {body}".rstrip()
        super().__init__(message)


class ReleaseError(RemoteCatalogError):
    """Release lookup or creation failed."""


class AssetUploadError(RemoteCatalogError):
    """Release asset upload failed."""

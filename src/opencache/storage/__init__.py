"""Storage backend implementations.

Every backend implements ``opencache.protocols.storage.StorageBackend``.
Pick one through configuration:

    from opencache.storage import create_storage

    storage = create_storage(storage_backend="local", local_storage_path="./data")

Backends:
    LocalStorage            narinfo and NARs on the local filesystem
    GitHubReleasesStorage   narinfo locally, NARs as GitHub release assets
    S3Storage               narinfo and NARs in an S3 bucket (requires boto3)
"""

from opencache.storage.factory import create_storage, storage_from_env
from opencache.storage.github_releases import GitHubReleasesStorage
from opencache.storage.local import LocalStorage
from opencache.storage.narinfo import NarinfoDirectory
from opencache.storage.upload import BufferedUpload, read_stream, stream_bytes

__all__ = [
    "BufferedUpload",
    "GitHubReleasesStorage",
    "LocalStorage",
    "NarinfoDirectory",
    "create_storage",
    "read_stream",
    "storage_from_env",
    "stream_bytes",
]

# S3 storage (requires boto3)
try:
    from opencache.storage.s3 import S3Storage
    __all__.append("S3Storage")
except ImportError:
    S3Storage = None  # type: ignore[misc,assignment]

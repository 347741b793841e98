"""Protocol definitions - all extension points."""

from opencache.protocols.storage import StorageBackend
from opencache.protocols.upload import PreparedUpload, UploadStrategy

__all__ = [
    # Storage
    "StorageBackend",
    # Upload
    "PreparedUpload",
    "UploadStrategy",
]

"""Utility modules."""

from opencache.utils.urls import encode_component, release_download_base_url

__all__ = [
    "encode_component",
    "release_download_base_url",
]

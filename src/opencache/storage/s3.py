"""S3-compatible bucket storage backend.

Works with AWS S3 and S3-compatible services (Cloudflare R2, MinIO). boto3
is synchronous, so every call runs in a worker thread.

Layout:
    s3://<bucket>/<prefix>/narinfo/<hash>.narinfo
    s3://<bucket>/<prefix>/nar/<filename>
"""

from __future__ import annotations

import asyncio
import logging
import tempfile
from collections.abc import AsyncIterable, AsyncIterator
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from opencache.core.exceptions import StorageError
from opencache.storage.narinfo import NARINFO_SUFFIX, validate_key
from opencache.storage.upload import DEFAULT_CHUNK_SIZE
from opencache.utils.urls import encode_component

logger = logging.getLogger(__name__)

MISSING_CODES = frozenset({"404", "NoSuchKey", "NotFound"})
SPOOL_MAX_SIZE = 8 * 1024 * 1024


def _is_missing(error: ClientError) -> bool:
    return error.response.get("Error", {}).get("Code") in MISSING_CODES


class S3Storage:
    """Binary cache backend on an S3 bucket.

    Credentials come from the usual boto3 chain (environment, config files,
    instance profile).

    Args:
        bucket: Bucket name.
        region: Bucket region.
        endpoint_url: Custom endpoint for S3-compatible services.
        prefix: Key prefix inside the bucket.
        public_url: Public base URL mapping to the bucket root.
            Without it, ``nar_download_url`` returns presigned URLs.
        presign_expires: Lifetime of presigned URLs in seconds.
        client: Preconfigured boto3 S3 client.
    """

    def __init__(
        self,
        bucket: str,
        *,
        region: str | None = None,
        endpoint_url: str | None = None,
        prefix: str = "",
        public_url: str | None = None,
        presign_expires: int = 3600,
        client: Any | None = None,
    ) -> None:
        self.bucket = bucket
        self.prefix = prefix.strip("/")
        self.public_url = public_url.rstrip("/") if public_url else None
        self.presign_expires = presign_expires
        self._client = client or boto3.client(
            "s3",
            region_name=region,
            endpoint_url=endpoint_url,
        )

    async def initialize(self) -> None:
        """No-op; the bucket must already exist."""

    async def close(self) -> None:
        """No-op; boto3 clients hold no resources that need closing."""

    async def __aenter__(self) -> S3Storage:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _key(self, *parts: str) -> str:
        return "/".join(p for p in (self.prefix, *parts) if p)

    def _narinfo_key(self, hash: str) -> str:
        return self._key("narinfo", f"{validate_key(hash)}{NARINFO_SUFFIX}")

    def _nar_key(self, filename: str) -> str:
        return self._key("nar", validate_key(filename))

    async def _call(self, method: str, **kwargs: Any) -> Any:
        try:
            return await asyncio.to_thread(getattr(self._client, method), **kwargs)
        except BotoCoreError as e:
            raise StorageError(f"S3 {method} failed: {e}") from e

    async def _exists(self, key: str) -> bool:
        try:
            await self._call("head_object", Bucket=self.bucket, Key=key)
        except ClientError as e:
            if _is_missing(e):
                return False
            raise StorageError(f"S3 head_object failed for {key}: {e}") from e
        return True

    async def _get(self, key: str) -> dict[str, Any] | None:
        try:
            return await self._call("get_object", Bucket=self.bucket, Key=key)
        except ClientError as e:
            if _is_missing(e):
                return None
            raise StorageError(f"S3 get_object failed for {key}: {e}") from e

    # --- narinfo ---

    async def has_narinfo(self, hash: str) -> bool:
        return await self._exists(self._narinfo_key(hash))

    async def get_narinfo(self, hash: str) -> str | None:
        response = await self._get(self._narinfo_key(hash))
        if response is None:
            return None
        body = await asyncio.to_thread(response["Body"].read)
        return body.decode("utf-8")

    async def put_narinfo(self, hash: str, content: str) -> None:
        key = self._narinfo_key(hash)
        try:
            await self._call(
                "put_object",
                Bucket=self.bucket,
                Key=key,
                Body=content.encode("utf-8"),
                ContentType="text/x-nix-narinfo",
            )
        except ClientError as e:
            raise StorageError(f"S3 put_object failed for {key}: {e}") from e

    # --- NAR files ---

    async def has_nar(self, filename: str) -> bool:
        return await self._exists(self._nar_key(filename))

    async def get_nar_stream(self, filename: str) -> AsyncIterator[bytes] | None:
        response = await self._get(self._nar_key(filename))
        if response is None:
            return None
        return _iter_body(response["Body"])

    async def put_nar_stream(self, filename: str, stream: AsyncIterable[bytes]) -> None:
        """Spool the stream (to disk past a few MiB) and hand it to boto3."""
        key = self._nar_key(filename)
        with tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_SIZE) as spool:
            async for chunk in stream:
                spool.write(chunk)
            spool.seek(0)
            try:
                await self._call(
                    "upload_fileobj",
                    Fileobj=spool,
                    Bucket=self.bucket,
                    Key=key,
                    ExtraArgs={"ContentType": "application/x-nix-nar"},
                )
            except ClientError as e:
                raise StorageError(f"S3 upload failed for {key}: {e}") from e
        logger.debug(f"Uploaded s3://{self.bucket}/{key}")

    def nar_download_url(self, filename: str) -> str:
        key = self._nar_key(filename)
        if self.public_url:
            return f"{self.public_url}/{'/'.join(encode_component(p) for p in key.split('/'))}"
        return self._client.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.bucket, "Key": key},
            ExpiresIn=self.presign_expires,
        )


async def _iter_body(body: Any, chunk_size: int = DEFAULT_CHUNK_SIZE) -> AsyncIterator[bytes]:
    try:
        while chunk := await asyncio.to_thread(body.read, chunk_size):
            yield chunk
    finally:
        body.close()

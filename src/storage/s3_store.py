# src/storage/s3_store.py — v1
"""S3-compatible object store (OBJECT_STORE_BACKEND=s3).

Supports AWS S3, MinIO, GCS interoperability mode and other S3-compatible
storage. boto3 calls are blocking, so they run in a worker thread; this
lets the facade bound every put with asyncio.wait_for.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from repairsync.cache.fingerprint import compute_digest
from repairsync.core.clock import Clock
from repairsync.core.errors import classify_store_error, client_error_code
from repairsync.storage.base_object_store import BaseObjectStore
from repairsync.storage.models import (
    JSON_CONTENT_TYPE,
    REMOTE_SCHEMES,
    StorageObject,
    StoreStatus,
)

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})


class S3ObjectStore(BaseObjectStore):
    """Flat key-value store on an S3 bucket."""

    def __init__(
        self,
        bucket: str,
        prefix: str = "repair-sessions/",
        region: str | None = None,
        endpoint_url: str | None = None,
        public_base_url: str | None = None,
        timeout_s: float = 10.0,
        clock: Clock | None = None,
    ) -> None:
        """Initialize S3 store.

        Args:
            bucket: S3 bucket name.
            prefix: Key prefix for all objects.
            region: AWS region (optional, uses boto3 default if not set).
            endpoint_url: Custom endpoint for MinIO/compatible storage.
            public_base_url: If set, locations are {public_base_url}/{key}
                instead of objstore://{bucket}/{key}.
            timeout_s: botocore connect/read timeout.

        Raises:
            ValueError: If public_base_url does not use a remote scheme.
        """
        if public_base_url and not public_base_url.startswith(REMOTE_SCHEMES):
            raise ValueError(f"Unsupported public base URL scheme: {public_base_url!r}")
        super().__init__(clock=clock)
        try:
            import boto3
            from botocore.config import Config
        except ImportError as e:
            raise ImportError(
                "boto3 package required for S3 object store: pip install boto3"
            ) from e

        kwargs: dict[str, Any] = {
            # One attempt per call; retries are owned by with_store_retry.
            "config": Config(
                connect_timeout=timeout_s,
                read_timeout=timeout_s,
                retries={"total_max_attempts": 1},
            ),
        }
        if region:
            kwargs["region_name"] = region
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url

        self._s3 = boto3.client("s3", **kwargs)
        self._bucket = bucket
        self._prefix = prefix.rstrip("/") + "/" if prefix else ""
        self._public_base_url = public_base_url.rstrip("/") if public_base_url else None

    def _full_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def location_for(self, key: str) -> str:
        full_key = self._full_key(key)
        if self._public_base_url:
            return f"{self._public_base_url}/{full_key}"
        return f"objstore://{self._bucket}/{full_key}"

    async def put(
        self, key: str, body: bytes, content_type: str = JSON_CONTENT_TYPE,
    ) -> StorageObject:
        full_key = self._full_key(key)
        try:
            await asyncio.to_thread(
                self._s3.put_object,
                Bucket=self._bucket,
                Key=full_key,
                Body=body,
                ContentType=content_type,
                Metadata={"content-sha256": compute_digest(body)},
            )
        except Exception as e:
            raise classify_store_error(e, key=full_key) from e
        logger.debug("S3 put: s3://%s/%s (%d bytes)", self._bucket, full_key, len(body))
        return self._build_object(key, self.location_for(key), body, content_type)

    async def get(self, key: str) -> bytes:
        full_key = self._full_key(key)
        try:
            response = await asyncio.to_thread(
                self._s3.get_object, Bucket=self._bucket, Key=full_key,
            )
            return response["Body"].read()
        except Exception as e:
            raise classify_store_error(e, key=full_key) from e

    async def exists(self, key: str) -> bool:
        full_key = self._full_key(key)
        try:
            await asyncio.to_thread(
                self._s3.head_object, Bucket=self._bucket, Key=full_key,
            )
            return True
        except Exception as e:
            if client_error_code(e) in _NOT_FOUND_CODES:
                return False
            raise classify_store_error(e, key=full_key) from e

    async def delete(self, key: str) -> None:
        full_key = self._full_key(key)
        try:
            await asyncio.to_thread(
                self._s3.delete_object, Bucket=self._bucket, Key=full_key,
            )
        except Exception as e:
            raise classify_store_error(e, key=full_key) from e

    async def check_status(self) -> StoreStatus:
        try:
            await asyncio.to_thread(self._s3.head_bucket, Bucket=self._bucket)
        except Exception as e:
            error = classify_store_error(e)
            logger.warning("S3 status check failed for %s: %s", self._bucket, error)
            return StoreStatus(
                is_configured=False, backend="s3", bucket=self._bucket, message=str(error),
            )
        return StoreStatus(is_configured=True, backend="s3", bucket=self._bucket)


# src/storage/base_object_store.py — v1
"""Abstract object store interface.

Stores treat keys and bytes as opaque: no business logic lives here. Remote
implementations raise StoreError subclasses; the local fallback raises
FallbackWriteError because nothing sits behind it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from repairsync.cache.fingerprint import compute_digest
from repairsync.core.clock import Clock, utc_now
from repairsync.storage.models import JSON_CONTENT_TYPE, StorageObject, StoreStatus


class BaseObjectStore(ABC):
    """Unified interface for object storage backends."""

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or utc_now

    @abstractmethod
    async def put(
        self, key: str, body: bytes, content_type: str = JSON_CONTENT_TYPE,
    ) -> StorageObject:
        """Write body under key and return the resulting StorageObject."""

    @abstractmethod
    async def get(self, key: str) -> bytes:
        """Read the bytes stored under key."""

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Check if key exists."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete key (best-effort cleanup)."""

    @abstractmethod
    async def check_status(self) -> StoreStatus:
        """Check whether the store is configured and reachable."""

    def _build_object(
        self, key: str, location_uri: str, body: bytes, content_type: str,
    ) -> StorageObject:
        return StorageObject(
            key=key,
            location_uri=location_uri,
            content_digest=compute_digest(body),
            size_bytes=len(body),
            content_type=content_type,
            created_at=self._clock(),
        )

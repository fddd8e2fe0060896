# src/storage/memory_store.py — v1
"""In-process object store (OBJECT_STORE_BACKEND=memory).

Holds objects in a dict and returns objstore://<bucket>/<key> locations.
Used for development without cloud credentials and as the store double in
tests. put_calls counts every put attempt, successful or not.
"""

from __future__ import annotations

import logging

from repairsync.core.clock import Clock
from repairsync.core.errors import StoreError
from repairsync.storage.base_object_store import BaseObjectStore
from repairsync.storage.models import JSON_CONTENT_TYPE, StorageObject, StoreStatus

logger = logging.getLogger(__name__)


class InMemoryObjectStore(BaseObjectStore):
    """Dict-backed object store."""

    def __init__(self, bucket: str = "memory", clock: Clock | None = None) -> None:
        super().__init__(clock=clock)
        self._bucket = bucket
        self._objects: dict[str, tuple[bytes, str]] = {}
        self.put_calls = 0

    def location_for(self, key: str) -> str:
        return f"objstore://{self._bucket}/{key}"

    async def put(
        self, key: str, body: bytes, content_type: str = JSON_CONTENT_TYPE,
    ) -> StorageObject:
        self.put_calls += 1
        self._objects[key] = (bytes(body), content_type)
        logger.debug("Memory put: %s (%d bytes)", key, len(body))
        return self._build_object(key, self.location_for(key), body, content_type)

    async def get(self, key: str) -> bytes:
        try:
            return self._objects[key][0]
        except KeyError as e:
            raise StoreError(f"No such key: {key}", key=key, cause=e) from e

    async def exists(self, key: str) -> bool:
        return key in self._objects

    async def delete(self, key: str) -> None:
        self._objects.pop(key, None)

    async def check_status(self) -> StoreStatus:
        return StoreStatus(is_configured=True, backend="memory", bucket=self._bucket)

    def keys(self) -> list[str]:
        return sorted(self._objects)

    def __len__(self) -> int:
        return len(self._objects)

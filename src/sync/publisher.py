# src/sync/publisher.py — v1
"""Remote publication with content-addressed dedup.

Looks the digest up in the dedup index; on a miss, puts the bytes with a
bounded retry and records the result. Store failures are raised as
StoreError for the caller to fall back on. Nothing here touches session
state.
"""

from __future__ import annotations

import logging
from typing import Literal

from repairsync.cache.base_dedup_index import BaseDedupIndex
from repairsync.core.clock import Clock, utc_now
from repairsync.core.errors import PermanentStoreError, StoreError
from repairsync.storage import layout
from repairsync.storage.base_object_store import BaseObjectStore
from repairsync.storage.models import JSON_CONTENT_TYPE, StorageObject
from repairsync.storage.retry import RetryConfig, with_store_retry
from repairsync.sync.stats import SyncStats

logger = logging.getLogger(__name__)

PublishOutcome = Literal["deduplicated", "written"]


class RemotePublisher:
    """Dedup-aware writer in front of a remote object store."""

    def __init__(
        self,
        object_store: BaseObjectStore,
        dedup_index: BaseDedupIndex,
        retry_config: RetryConfig | None = None,
        key_style: str = "digest",
        clock: Clock | None = None,
        stats: SyncStats | None = None,
    ) -> None:
        self._store = object_store
        self._index = dedup_index
        self._retry = retry_config or RetryConfig()
        self._key_style = key_style
        self._clock = clock or utc_now
        self.stats = stats or SyncStats()

    async def publish(
        self,
        key_prefix: str,
        body: bytes,
        digest: str,
        content_type: str = JSON_CONTENT_TYPE,
    ) -> tuple[StorageObject, PublishOutcome]:
        """Return the remote object holding body, writing it only if needed.

        Raises:
            StoreError: If the put failed after the bounded retries.
        """
        hit = self._index.lookup(digest)
        if hit is not None:
            self.stats.dedup_hits += 1
            logger.info(
                "Dedup hit",
                extra={"digest": digest, "location_uri": hit.location_uri, "outcome": "deduplicated"},
            )
            return hit, "deduplicated"

        key = layout.object_key(key_prefix, digest, self._clock(), style=self._key_style)
        try:
            stored = await with_store_retry(
                lambda: self._store.put(key, body, content_type),
                self._retry,
                key=key,
                on_retry=self._on_retry,
            )
        except StoreError as e:
            if isinstance(e, PermanentStoreError):
                self.stats.permanent_failures += 1
                logger.error("Object store misconfigured, put %s rejected: %s", key, e)
            else:
                self.stats.transient_failures += 1
                logger.warning("Object store unavailable, put %s failed: %s", key, e)
            raise

        self.stats.remote_writes += 1
        held = self._index.record(digest, stored)
        logger.info(
            "Stored %s (%d bytes)", key, stored.size_bytes,
            extra={"digest": digest, "location_uri": held.location_uri, "outcome": "written"},
        )
        return held, "written"

    def _on_retry(self, error: StoreError) -> None:
        self.stats.retries += 1

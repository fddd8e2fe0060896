# src/cache/memory_index.py — v1
"""In-memory LRU dedup index (DEDUP_INDEX_BACKEND=memory).

Reads and writes take a private lock and never the per-session guard, so
lookups for unrelated sessions do not contend on document mutation.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from datetime import datetime, timezone

from repairsync.cache.base_dedup_index import BaseDedupIndex
from repairsync.cache.models import DedupEntry
from repairsync.storage.models import StorageObject

logger = logging.getLogger(__name__)


class MemoryDedupIndex(BaseDedupIndex):
    """Bounded digest -> StorageObject map with LRU eviction."""

    def __init__(self, capacity: int = 10_000) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self._capacity = capacity
        self._entries: OrderedDict[str, DedupEntry] = OrderedDict()
        self._lock = threading.Lock()
        self.evictions = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    def lookup(self, digest: str) -> StorageObject | None:
        with self._lock:
            entry = self._entries.get(digest)
            if entry is None:
                return None
            self._entries.move_to_end(digest)
            return entry.storage_object

    def record(self, digest: str, storage_object: StorageObject) -> StorageObject:
        self.check_recordable(digest, storage_object)
        with self._lock:
            existing = self._entries.get(digest)
            if existing is not None:
                self._entries.move_to_end(digest)
                if existing.location_uri != storage_object.location_uri:
                    logger.warning(
                        "Dedup conflict for %s: keeping %s, ignoring %s",
                        digest[:16], existing.location_uri, storage_object.location_uri,
                    )
                return existing.storage_object

            self._entries[digest] = DedupEntry(
                digest=digest,
                storage_object=storage_object,
                recorded_at=datetime.now(timezone.utc),
            )
            self._evict_locked()
            return storage_object

    def discard(self, digest: str) -> None:
        with self._lock:
            self._entries.pop(digest, None)

    def entries(self) -> list[DedupEntry]:
        """Snapshot of entries, least recently used first."""
        with self._lock:
            return list(self._entries.values())

    def load(self, entries: list[DedupEntry]) -> None:
        """Bulk-insert entries (oldest first) without conflict logging."""
        with self._lock:
            for entry in entries:
                self._entries[entry.digest] = entry
                self._entries.move_to_end(entry.digest)
            self._evict_locked()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _evict_locked(self) -> None:
        while len(self._entries) > self._capacity:
            digest, _ = self._entries.popitem(last=False)
            self.evictions += 1
            logger.debug("Evicted dedup entry %s", digest[:16])

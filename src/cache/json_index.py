# src/cache/json_index.py — v1
"""JSON file-backed dedup index (DEDUP_INDEX_BACKEND=json).

Keeps the LRU in memory and writes the whole index through to a JSON file
on every new record, so the dedup optimization survives a process restart.
A missing, corrupt or unwritable file only costs the optimization.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path

from pydantic import ValidationError

from repairsync.cache.memory_index import MemoryDedupIndex
from repairsync.cache.models import DedupEntry
from repairsync.storage.models import StorageObject

logger = logging.getLogger(__name__)


class JsonDedupIndex(MemoryDedupIndex):
    """Memory LRU index persisted to a single JSON file."""

    def __init__(self, path: Path | str, capacity: int = 10_000) -> None:
        super().__init__(capacity=capacity)
        self._path = Path(path).expanduser()
        self._write_lock = threading.Lock()
        self._load_file()

    @property
    def path(self) -> Path:
        return self._path

    def record(self, digest: str, storage_object: StorageObject) -> StorageObject:
        is_new = self.lookup(digest) is None
        held = super().record(digest, storage_object)
        if is_new:
            self._flush()
        return held

    def discard(self, digest: str) -> None:
        super().discard(digest)
        self._flush()

    def _load_file(self) -> None:
        if not self._path.exists():
            return
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            entries = [DedupEntry(**item) for item in data.get("entries", [])]
        except (OSError, ValueError, ValidationError, AttributeError, TypeError) as e:
            logger.warning("Ignoring unreadable dedup index %s: %s", self._path, e)
            return
        self.load(entries)
        logger.info("Loaded %d dedup entries from %s", len(entries), self._path)

    def _flush(self) -> None:
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        with self._write_lock:
            # Snapshot under the write lock so the last writer holds the newest entries.
            payload = {
                "version": 1,
                "entries": [entry.model_dump(mode="json") for entry in self.entries()],
            }
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                tmp.write_text(json.dumps(payload, indent=2), encoding="utf-8")
                os.replace(tmp, self._path)
            except OSError as e:
                logger.warning("Failed to persist dedup index %s: %s", self._path, e)

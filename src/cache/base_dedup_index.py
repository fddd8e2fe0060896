# src/cache/base_dedup_index.py — v1
"""Abstract dedup index interface.

The index is best-effort: losing it only removes the optimization. Only
remote locations may be recorded, since local file:// paths are not
resolvable by other callers.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from repairsync.storage.models import StorageObject


class BaseDedupIndex(ABC):
    """Unified interface for dedup index backends."""

    @abstractmethod
    def lookup(self, digest: str) -> StorageObject | None:
        """Return the object previously stored for digest, if any."""

    @abstractmethod
    def record(self, digest: str, storage_object: StorageObject) -> StorageObject:
        """Record digest -> object. Returns the object now held (first writer wins)."""

    @abstractmethod
    def discard(self, digest: str) -> None:
        """Forget a digest (e.g. after the remote object was deleted)."""

    @abstractmethod
    def __len__(self) -> int:
        """Number of entries currently held."""

    def __contains__(self, digest: object) -> bool:
        return isinstance(digest, str) and self.lookup(digest) is not None

    @staticmethod
    def check_recordable(digest: str, storage_object: StorageObject) -> None:
        """Reject entries that must never satisfy a remote dedup lookup.

        Raises:
            ValueError: If the object is not remote or the digest does not match.
        """
        if not storage_object.is_remote:
            raise ValueError(
                f"Only remote objects can be recorded, got {storage_object.location_uri!r}"
            )
        if storage_object.content_digest != digest:
            raise ValueError(
                f"Digest mismatch: {digest} != {storage_object.content_digest}"
            )

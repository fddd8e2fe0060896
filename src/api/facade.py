# src/api/facade.py — v1
"""Public sync facade: single entry point for persisting repair journeys.

Usage:
    from repairsync.api.facade import SyncFacade
    facade = SyncFacade.from_settings()
    await facade.sync_stage(139, "submission", {"deviceType": "chair"})
    await facade.sync_stage(139, "diagnostics", {"cause": "broken leg"})
    obj = await facade.finalize_session(139)

Every persist for a session runs inside SingleFlightGuard.do(session_id):
  1. Merge the fragment (synchronously, so merge order is call order)
  2. Snapshot the document and compute its digest
  3. Unchanged since the last persist -> return the recorded object
  4. Digest already stored remotely -> reuse that object
  5. Put to the object store (timeout + bounded retry), record in the index
  6. Store failed -> local fallback (file://), or an error:// sentinel
Store errors never escape. Callers only see SerializationError, ValueError
for unknown stages and KeyError for finalizing an unknown session.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from repairsync.cache.base_dedup_index import BaseDedupIndex
from repairsync.cache.fingerprint import compute_digest
from repairsync.cache.index_factory import create_dedup_index
from repairsync.config.settings import Settings
from repairsync.core.clock import Clock, utc_now
from repairsync.core.errors import FallbackWriteError, StoreError
from repairsync.logging.context import set_sync_context
from repairsync.storage import layout
from repairsync.storage.base_object_store import BaseObjectStore
from repairsync.storage.local_store import LocalFallbackStore
from repairsync.storage.models import JSON_CONTENT_TYPE, StorageObject, StoreStatus
from repairsync.storage.retry import RetryConfig
from repairsync.storage.store_factory import create_fallback_store, create_object_store
from repairsync.sync.consolidator import SessionConsolidator, canonical_json
from repairsync.sync.publisher import RemotePublisher
from repairsync.sync.single_flight import SingleFlightGuard
from repairsync.sync.stats import SyncStats

logger = logging.getLogger(__name__)

DATASET_GUARD_KEY = layout.DATASET_SESSION_DIR


@dataclass(frozen=True)
class _FlightResult:
    """What a persist flight produced and which revision it covered."""

    storage_object: StorageObject
    revision: int


class SyncFacade:
    """Consolidate, deduplicate and persist session stages."""

    def __init__(
        self,
        object_store: BaseObjectStore,
        fallback_store: LocalFallbackStore,
        dedup_index: BaseDedupIndex | None = None,
        settings: Settings | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._settings = settings or Settings()
        self._clock = clock or utc_now
        self._object_store = object_store
        self._fallback_store = fallback_store
        # empty indexes are falsy
        self._dedup_index = (
            dedup_index if dedup_index is not None else create_dedup_index(self._settings)
        )
        self._consolidator = SessionConsolidator()
        self._guard = SingleFlightGuard()
        self.stats = SyncStats()
        self._publisher = RemotePublisher(
            object_store=object_store,
            dedup_index=self._dedup_index,
            retry_config=RetryConfig(
                max_retries=self._settings.put_max_retries,
                base_delay_s=self._settings.put_retry_base_delay_s,
                timeout_s=self._settings.put_timeout_s,
            ),
            key_style=self._settings.object_key_style,
            clock=self._clock,
            stats=self.stats,
        )

    @classmethod
    def from_settings(
        cls, settings: Settings | None = None, clock: Clock | None = None,
    ) -> SyncFacade:
        """Build a facade with collaborators chosen by configuration."""
        settings = settings or Settings()
        return cls(
            object_store=create_object_store(settings, clock=clock),
            fallback_store=create_fallback_store(settings, clock=clock),
            dedup_index=create_dedup_index(settings),
            settings=settings,
            clock=clock,
        )

    # --- Collaborators ---

    @property
    def consolidator(self) -> SessionConsolidator:
        return self._consolidator

    @property
    def guard(self) -> SingleFlightGuard:
        return self._guard

    @property
    def dedup_index(self) -> BaseDedupIndex:
        return self._dedup_index

    @property
    def object_store(self) -> BaseObjectStore:
        return self._object_store

    @property
    def fallback_store(self) -> LocalFallbackStore:
        return self._fallback_store

    @property
    def publisher(self) -> RemotePublisher:
        return self._publisher

    # --- Public operations ---

    async def sync_stage(self, session_id: int, stage: str, payload: Any) -> StorageObject:
        """Merge one stage fragment and persist the consolidated document.

        Raises:
            ValueError: If stage is unknown.
            SerializationError: If payload is not JSON-safe.
        """
        set_sync_context(session_id, "sync_stage", stage)
        document = self._consolidator.merge(session_id, stage, payload)
        return await self._persist_until_current(
            session_id, document.revision, stage=stage, force=False,
        )

    async def append_stage(self, session_id: int, stage: str, item: Any) -> StorageObject:
        """Append one item to a list-valued stage and persist.

        Raises:
            ValueError: If stage is not list-valued.
            SerializationError: If item is not JSON-safe.
        """
        set_sync_context(session_id, "append_stage", stage)
        document = self._consolidator.append(session_id, stage, item)
        return await self._persist_until_current(
            session_id, document.revision, stage=stage, force=False,
        )

    async def finalize_session(self, session_id: int) -> StorageObject:
        """Force a full consolidation of the session, bypassing the unchanged check.

        Raises:
            KeyError: If nothing was ever synced for session_id.
        """
        set_sync_context(session_id, "finalize_session")
        document = self._consolidator.require(session_id)
        return await self._persist_until_current(
            session_id, document.revision, stage=layout.CONSOLIDATED_STAGE, force=True,
        )

    async def retry_pending(self) -> dict[int, StorageObject]:
        """Re-finalize every session whose latest state missed the object store."""
        pending = [d.session_id for d in self._consolidator.documents() if d.pending_fallback]
        if not pending:
            return {}
        logger.info("Retrying %d sessions pending remote sync", len(pending))
        results = await asyncio.gather(*(self.finalize_session(sid) for sid in pending))
        return dict(zip(pending, results))

    async def export_dataset(
        self, key_prefix: str = layout.DATASET_KEY_PREFIX,
    ) -> StorageObject:
        """Persist one document holding every complete repair journey.

        Only sessions with diagnostics, issue confirmation and repair guide
        are included. Identical exports deduplicate like session snapshots.
        """
        set_sync_context(None, "export_dataset")
        sessions = [
            {"sessionId": d.session_id, "stages": d.stages}
            for d in self._consolidator.documents()
            if d.is_complete
        ]
        body = canonical_json({
            "schema": 1,
            "source": "repairsync",
            "sessionCount": len(sessions),
            "sessions": sessions,
        }).encode("utf-8")
        digest = compute_digest(body)

        async def run() -> StorageObject:
            storage_object, _ = await self._store(
                key_prefix, body, digest, fallback_dir=DATASET_GUARD_KEY, stage="dataset",
            )
            return storage_object

        logger.info("Exporting dataset with %d complete sessions", len(sessions))
        return await self._guard.do(DATASET_GUARD_KEY, run)

    async def status(self) -> dict[str, StoreStatus]:
        """Reachability of the object store and the fallback directory."""
        remote, local = await asyncio.gather(
            self._object_store.check_status(), self._fallback_store.check_status(),
        )
        return {"object_store": remote, "fallback_store": local}

    # --- Persist machinery ---

    async def _persist_until_current(
        self, session_id: int, revision: int, stage: str, force: bool,
    ) -> StorageObject:
        """Persist through the guard until the result covers `revision`.

        A caller that joined a flight whose snapshot was taken before its
        own merge re-enters the guard; the next flight snapshots the latest
        document, so this loops at most twice per concurrent burst.
        """
        while True:
            result = await self._guard.do(
                session_id, lambda: self._persist_session(session_id, stage, force),
            )
            if result.revision >= revision:
                return result.storage_object
            logger.debug(
                "Session %s flight covered revision %d < %d, re-entering",
                session_id, result.revision, revision,
            )

    async def _persist_session(self, session_id: int, stage: str, force: bool) -> _FlightResult:
        document = self._consolidator.require(session_id)
        revision = document.revision
        body = self._consolidator.snapshot(session_id)
        digest = compute_digest(body)

        if (
            not force
            and document.last_object is not None
            and digest == document.last_consolidated_digest
        ):
            self.stats.short_circuits += 1
            logger.debug("Session %s unchanged since %s", session_id, digest[:16])
            return _FlightResult(document.last_object, revision)

        storage_object, outcome = await self._store(
            layout.session_prefix(session_id), body, digest,
            fallback_dir=session_id, stage=stage,
        )

        if storage_object.is_remote:
            document.last_consolidated_digest = digest
            document.last_object = storage_object
            document.pending_fallback = False
            if outcome == "written":
                document.version += 1
        else:
            document.pending_fallback = True

        return _FlightResult(storage_object, revision)

    async def _store(
        self,
        key_prefix: str,
        body: bytes,
        digest: str,
        fallback_dir: int | str,
        stage: str,
    ) -> tuple[StorageObject, str]:
        """Publish remotely, else fall back locally, else return an error sentinel."""
        try:
            return await self._publisher.publish(key_prefix, body, digest)
        except StoreError as e:
            remote_error = e

        try:
            storage_object = await self._fallback_store.put_artifact(fallback_dir, stage, body)
        except FallbackWriteError as e:
            self.stats.errors += 1
            logger.error(
                "Fallback write failed for %s/%s after store error (%s): %s",
                fallback_dir, stage, remote_error, e,
            )
            return self._error_sentinel(key_prefix, body, digest, fallback_dir, stage, e), "error"

        self.stats.fallbacks += 1
        logger.warning(
            "Stored %s/%s in local fallback %s (%s)",
            fallback_dir, stage, storage_object.location_uri, type(remote_error).__name__,
        )
        return storage_object, "fallback"

    def _error_sentinel(
        self,
        key_prefix: str,
        body: bytes,
        digest: str,
        fallback_dir: int | str,
        stage: str,
        error: FallbackWriteError,
    ) -> StorageObject:
        created_at = self._clock()
        stamp = int(created_at.timestamp() * 1000)
        return StorageObject(
            key=f"{key_prefix}_{stage}",
            location_uri=f"error://fallback-write-failed/{fallback_dir}/{stage}/{stamp}",
            content_digest=digest,
            size_bytes=len(body),
            content_type=JSON_CONTENT_TYPE,
            created_at=created_at,
            error=str(error),
        )

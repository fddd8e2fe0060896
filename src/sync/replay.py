# src/sync/replay.py — v1
"""Re-upload local fallback artifacts once the object store is back.

Artifacts are read from disk, so this works across process restarts when
the in-memory session documents are gone. Each file goes through the same
dedup-aware publisher as live syncs, under a digest-derived key.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Literal

from pydantic import BaseModel

from repairsync.cache.fingerprint import compute_digest
from repairsync.core.errors import StoreError
from repairsync.storage import layout
from repairsync.storage.local_store import LocalFallbackStore
from repairsync.sync.publisher import RemotePublisher

logger = logging.getLogger(__name__)


class ReplayResult(BaseModel):
    """Outcome of re-uploading one fallback artifact."""

    path: Path
    session: str
    stage: str
    status: Literal["uploaded", "deduplicated", "failed", "skipped"]
    location_uri: str | None = None
    error: str | None = None


class FallbackReplayer:
    """Push fallback artifacts to the remote store."""

    def __init__(self, fallback_store: LocalFallbackStore, publisher: RemotePublisher) -> None:
        self._fallback = fallback_store
        self._publisher = publisher

    async def push(
        self,
        session_id: int | str | None = None,
        delete: bool = False,
    ) -> list[ReplayResult]:
        """Upload every fallback artifact (optionally for one session).

        Args:
            session_id: Restrict to one session directory.
            delete: Remove local files once they are safely remote.

        Returns:
            One ReplayResult per artifact, in listing order.
        """
        results: list[ReplayResult] = []
        for path in self._fallback.list_artifacts(session_id):
            results.append(await self._push_one(path, delete))

        uploaded = sum(1 for r in results if r.status in ("uploaded", "deduplicated"))
        logger.info("Replayed %d/%d fallback artifacts", uploaded, len(results))
        return results

    async def _push_one(self, path: Path, delete: bool) -> ReplayResult:
        try:
            session, stage = layout.parse_fallback_path(self._fallback.base_dir, path)
        except ValueError as e:
            logger.warning("Skipping %s: %s", path, e)
            return ReplayResult(path=path, session="", stage="", status="skipped", error=str(e))

        try:
            body = path.read_bytes()
        except OSError as e:
            logger.warning("Cannot read fallback artifact %s: %s", path, e)
            return ReplayResult(
                path=path, session=session, stage=stage, status="failed", error=str(e),
            )

        digest = compute_digest(body)
        prefix = (
            layout.DATASET_KEY_PREFIX
            if session == layout.DATASET_SESSION_DIR
            else layout.session_prefix(session)
        )

        try:
            stored, outcome = await self._publisher.publish(prefix, body, digest)
        except StoreError as e:
            return ReplayResult(
                path=path, session=session, stage=stage, status="failed", error=str(e),
            )

        if delete:
            await self._fallback.delete(str(path.relative_to(self._fallback.base_dir)))

        return ReplayResult(
            path=path,
            session=session,
            stage=stage,
            status="uploaded" if outcome == "written" else "deduplicated",
            location_uri=stored.location_uri,
        )

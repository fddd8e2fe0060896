# src/storage/local_store.py — v1
"""Local filesystem fallback store.

Used only when the object store is unreachable or a put fails. Session
artifacts are written to {base_dir}/{session_id}/{stage}_{timestamp}.json
and addressed with file:// URIs. Any OSError is a FallbackWriteError:
there is no further place to degrade to.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from urllib.parse import urlparse
from urllib.request import url2pathname

from repairsync.core.clock import Clock
from repairsync.core.errors import FallbackWriteError
from repairsync.storage import layout
from repairsync.storage.base_object_store import BaseObjectStore
from repairsync.storage.models import (
    JSON_CONTENT_TYPE,
    LOCAL_SCHEME,
    StorageObject,
    StoreStatus,
)

logger = logging.getLogger(__name__)


class LocalFallbackStore(BaseObjectStore):
    """Write artifacts to a local directory."""

    def __init__(self, base_dir: Path | str, clock: Clock | None = None) -> None:
        super().__init__(clock=clock)
        self._base = Path(base_dir).expanduser()

    @property
    def base_dir(self) -> Path:
        return self._base

    def _resolve(self, key: str) -> Path:
        """Resolve a relative key under base_dir, refusing to escape it."""
        path = (self._base / key).resolve()
        base = self._base.resolve()
        if path != base and base not in path.parents:
            raise ValueError(f"Key escapes fallback directory: {key!r}")
        return path

    async def put(
        self, key: str, body: bytes, content_type: str = JSON_CONTENT_TYPE,
    ) -> StorageObject:
        path = self._resolve(key)
        self._write(path, body)
        return self._build_object(key, path.as_uri(), body, content_type)

    async def put_artifact(
        self,
        session_id: int | str,
        stage: str,
        body: bytes,
        content_type: str = JSON_CONTENT_TYPE,
    ) -> StorageObject:
        """Write a session artifact using the fallback layout.

        Raises:
            FallbackWriteError: If the file cannot be written.
        """
        timestamp = self._clock()
        path = layout.fallback_path(self._base, session_id, stage, timestamp)
        path = self._write_unique(path, body)
        key = str(path.relative_to(self._base))
        logger.info("Stored fallback artifact for session %s: %s", session_id, path)
        return self._build_object(key, path.resolve().as_uri(), body, content_type)

    async def get(self, key: str) -> bytes:
        return self._resolve(key).read_bytes()

    async def read(self, location_uri: str) -> bytes:
        """Read back the bytes behind a file:// location returned by this store."""
        return self.path_for(location_uri).read_bytes()

    def path_for(self, location_uri: str) -> Path:
        """Map a file:// location to a path inside base_dir.

        Raises:
            ValueError: If the URI is not a file:// URI under base_dir.
        """
        if not location_uri.startswith(LOCAL_SCHEME):
            raise ValueError(f"Not a local location: {location_uri!r}")
        path = Path(url2pathname(urlparse(location_uri).path)).resolve()
        base = self._base.resolve()
        if base not in path.parents:
            raise ValueError(f"Location outside fallback directory: {location_uri!r}")
        return path

    async def exists(self, key: str) -> bool:
        return self._resolve(key).exists()

    async def delete(self, key: str) -> None:
        path = self._resolve(key)
        if path.exists():
            path.unlink()
            self._prune_empty_dir(path.parent)

    async def check_status(self) -> StoreStatus:
        try:
            self._base.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return StoreStatus(
                is_configured=False, backend="local", bucket=str(self._base), message=str(e),
            )
        writable = os.access(self._base, os.W_OK)
        return StoreStatus(
            is_configured=writable,
            backend="local",
            bucket=str(self._base),
            message=None if writable else "Fallback directory is not writable",
        )

    def list_artifacts(self, session_id: int | str | None = None) -> list[Path]:
        """List fallback artifacts, oldest first within each session."""
        if session_id is not None:
            roots = [layout.fallback_session_dir(self._base, session_id)]
        elif self._base.is_dir():
            roots = sorted(p for p in self._base.iterdir() if p.is_dir())
        else:
            roots = []

        artifacts: list[Path] = []
        for root in roots:
            if root.is_dir():
                artifacts.extend(sorted(root.glob(f"*{layout.FALLBACK_SUFFIX}")))
        return artifacts

    def _write(self, path: Path, body: bytes) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(body)
        except OSError as e:
            raise FallbackWriteError(
                f"Failed to write fallback file {path}: {e}", path=str(path), cause=e,
            ) from e

    def _write_unique(self, path: Path, body: bytes) -> Path:
        """Create path exclusively, adding a counter if the name is taken."""
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            candidate = path
            for n in range(1, 1000):
                try:
                    with open(candidate, "xb") as f:
                        f.write(body)
                    return candidate
                except FileExistsError:
                    candidate = path.with_name(f"{path.stem}-{n}{path.suffix}")
        except OSError as e:
            raise FallbackWriteError(
                f"Failed to write fallback file {path}: {e}", path=str(path), cause=e,
            ) from e
        raise FallbackWriteError(f"No free fallback file name for {path}", path=str(path))

    def _prune_empty_dir(self, directory: Path) -> None:
        if directory == self._base.resolve():
            return
        try:
            directory.rmdir()
        except OSError:
            pass  # not empty

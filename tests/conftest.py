# tests/conftest.py — v1
"""Shared test fixtures for all unit and integration tests.

Provides settings isolated from .env, an in-memory object store, a temp
fallback directory, a fixed clock and a wired SyncFacade. No network.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from repairsync.api.facade import SyncFacade
from repairsync.cache.memory_index import MemoryDedupIndex
from repairsync.config.settings import Settings
from repairsync.core.errors import TransientStoreError
from repairsync.logging.context import clear_context
from repairsync.storage.local_store import LocalFallbackStore
from repairsync.storage.memory_store import InMemoryObjectStore
from repairsync.storage.models import JSON_CONTENT_TYPE, StorageObject

FIXED_NOW = datetime(2026, 3, 14, 9, 26, 53, 589000, tzinfo=timezone.utc)


class FailingObjectStore(InMemoryObjectStore):
    """Memory store whose puts fail with a configurable error."""

    def __init__(self, error: Exception | None = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self.error = error or TransientStoreError("store unavailable")

    async def put(
        self, key: str, body: bytes, content_type: str = JSON_CONTENT_TYPE,
    ) -> StorageObject:
        self.put_calls += 1
        raise self.error


# === FIXTURES: Configuration ===


@pytest.fixture
def fixed_clock():
    """Clock returning the same instant on every call."""
    return lambda: FIXED_NOW


@pytest.fixture
def fallback_dir(tmp_path: Path) -> Path:
    return tmp_path / "fallback"


@pytest.fixture
def settings(fallback_dir: Path) -> Settings:
    """Settings detached from any .env, with no retry delay."""
    return Settings(
        _env_file=None,
        object_store_backend="memory",
        fallback_dir=fallback_dir,
        put_timeout_s=2.0,
        put_max_retries=1,
        put_retry_base_delay_s=0.0,
    )


# === FIXTURES: Stores ===


@pytest.fixture
def memory_store(fixed_clock) -> InMemoryObjectStore:
    return InMemoryObjectStore(bucket="test-bucket", clock=fixed_clock)


@pytest.fixture
def failing_store(fixed_clock) -> FailingObjectStore:
    return FailingObjectStore(bucket="test-bucket", clock=fixed_clock)


@pytest.fixture
def fallback_store(fallback_dir: Path) -> LocalFallbackStore:
    return LocalFallbackStore(fallback_dir)


@pytest.fixture
def dedup_index() -> MemoryDedupIndex:
    return MemoryDedupIndex(capacity=100)


# === FIXTURES: Facade ===


@pytest.fixture
def facade(memory_store, fallback_store, dedup_index, settings, fixed_clock) -> SyncFacade:
    """Facade over a healthy in-memory store."""
    return SyncFacade(
        object_store=memory_store,
        fallback_store=fallback_store,
        dedup_index=dedup_index,
        settings=settings,
        clock=fixed_clock,
    )


@pytest.fixture
def offline_facade(failing_store, fallback_store, dedup_index, settings, fixed_clock) -> SyncFacade:
    """Facade whose object store rejects every put."""
    return SyncFacade(
        object_store=failing_store,
        fallback_store=fallback_store,
        dedup_index=dedup_index,
        settings=settings,
        clock=fixed_clock,
    )


@pytest.fixture(autouse=True)
def _reset_log_context():
    yield
    clear_context()


@pytest.fixture
def make_remote_object():
    """Factory for StorageObjects as a remote store would return them."""

    def _make(
        digest: str,
        key: str = "session_1_abc.json",
        location_uri: str | None = None,
    ) -> StorageObject:
        return StorageObject(
            key=key,
            location_uri=location_uri or f"objstore://test-bucket/{key}",
            content_digest=digest,
            size_bytes=10,
            created_at=FIXED_NOW,
        )

    return _make

# tests/unit/sync/test_unit_replay.py — v1
"""Tests for sync/replay.py — re-uploading fallback artifacts."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from repairsync.cache.fingerprint import compute_digest
from repairsync.storage.retry import RetryConfig
from repairsync.sync.publisher import RemotePublisher
from repairsync.sync.replay import FallbackReplayer

NO_DELAY = RetryConfig(max_retries=0, base_delay_s=0.0, timeout_s=1.0)


@pytest.fixture
def publisher(memory_store, dedup_index) -> RemotePublisher:
    return RemotePublisher(memory_store, dedup_index, NO_DELAY)


class TestFallbackReplayer:
    @pytest.mark.asyncio
    async def test_push_uploads_artifacts(self, fallback_store, publisher, memory_store):
        await fallback_store.put_artifact(139, "diagnostics", b'{"a":1}')
        await fallback_store.put_artifact("dataset", "dataset", b'{"b":2}')

        results = await FallbackReplayer(fallback_store, publisher).push()

        assert [r.status for r in results] == ["uploaded", "uploaded"]
        keys = memory_store.keys()
        digest = compute_digest(b'{"a":1}')
        assert f"session_139_{digest[:16]}.json" in keys
        assert any(k.startswith("repair_training_dataset_") for k in keys)
        assert len(fallback_store.list_artifacts()) == 2

    @pytest.mark.asyncio
    async def test_identical_artifacts_deduplicate(self, fallback_store, publisher, memory_store):
        await fallback_store.put_artifact(1, "submission", b"same")
        await fallback_store.put_artifact(1, "consolidated", b"same")

        results = await FallbackReplayer(fallback_store, publisher).push(session_id=1)

        assert sorted(r.status for r in results) == ["deduplicated", "uploaded"]
        assert memory_store.put_calls == 1
        assert len({r.location_uri for r in results}) == 1

    @pytest.mark.asyncio
    async def test_delete_after_upload(self, fallback_store, publisher):
        await fallback_store.put_artifact(1, "submission", b"x")
        results = await FallbackReplayer(fallback_store, publisher).push(delete=True)
        assert results[0].status == "uploaded"
        assert fallback_store.list_artifacts() == []

    @pytest.mark.asyncio
    async def test_failure_keeps_file(self, fallback_store, failing_store, dedup_index):
        await fallback_store.put_artifact(1, "submission", b"x")
        publisher = RemotePublisher(failing_store, dedup_index, NO_DELAY)

        results = await FallbackReplayer(fallback_store, publisher).push(delete=True)

        assert results[0].status == "failed"
        assert results[0].error
        assert len(fallback_store.list_artifacts()) == 1

    @pytest.mark.asyncio
    async def test_skips_foreign_files(self, fallback_store, publisher):
        stray = fallback_store.base_dir / "1" / "notes.json"
        stray.parent.mkdir(parents=True)
        stray.write_text("{}")

        results = await FallbackReplayer(fallback_store, publisher).push()

        assert results[0].status == "skipped"

    @pytest.mark.asyncio
    async def test_unreadable_artifact_does_not_abort_push(
        self, fallback_store, publisher, memory_store,
    ):
        await fallback_store.put_artifact(1, "submission", b'{"a":1}')
        await fallback_store.put_artifact(2, "submission", b'{"b":2}')
        original = Path.read_bytes

        def read_bytes(path):
            if path.parent.name == "1":
                raise PermissionError(f"denied: {path}")
            return original(path)

        with patch.object(Path, "read_bytes", read_bytes):
            results = await FallbackReplayer(fallback_store, publisher).push(delete=True)

        by_session = {r.session: r for r in results}
        assert by_session["1"].status == "failed"
        assert "denied" in by_session["1"].error
        assert by_session["2"].status == "uploaded"
        assert memory_store.put_calls == 1
        assert len(fallback_store.list_artifacts(1)) == 1

# tests/unit/storage/test_unit_memory_store.py — v1
"""Tests for storage/memory_store.py."""

from __future__ import annotations

import pytest

from repairsync.cache.fingerprint import compute_digest
from repairsync.core.errors import StoreError


class TestInMemoryObjectStore:
    @pytest.mark.asyncio
    async def test_put_and_get(self, memory_store, fixed_clock):
        obj = await memory_store.put("session_1_abc.json", b'{"a":1}')
        assert obj.location_uri == "objstore://test-bucket/session_1_abc.json"
        assert obj.content_digest == compute_digest(b'{"a":1}')
        assert obj.size_bytes == 7
        assert obj.created_at == fixed_clock()
        assert obj.is_remote
        assert await memory_store.get("session_1_abc.json") == b'{"a":1}'

    @pytest.mark.asyncio
    async def test_put_calls_counted(self, memory_store):
        await memory_store.put("a.json", b"1")
        await memory_store.put("a.json", b"1")
        assert memory_store.put_calls == 2
        assert len(memory_store) == 1

    @pytest.mark.asyncio
    async def test_get_missing(self, memory_store):
        with pytest.raises(StoreError):
            await memory_store.get("missing.json")

    @pytest.mark.asyncio
    async def test_exists_delete(self, memory_store):
        await memory_store.put("a.json", b"1")
        assert await memory_store.exists("a.json")
        await memory_store.delete("a.json")
        assert not await memory_store.exists("a.json")
        assert memory_store.keys() == []

    @pytest.mark.asyncio
    async def test_status(self, memory_store):
        status = await memory_store.check_status()
        assert status.is_configured
        assert status.backend == "memory"
        assert status.bucket == "test-bucket"

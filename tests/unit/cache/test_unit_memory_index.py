# tests/unit/cache/test_unit_memory_index.py — v1
"""Tests for cache/memory_index.py — LRU dedup index."""

from __future__ import annotations

import pytest

from repairsync.cache.fingerprint import compute_digest
from repairsync.cache.memory_index import MemoryDedupIndex

D1 = compute_digest(b"one")
D2 = compute_digest(b"two")
D3 = compute_digest(b"three")


class TestLookupRecord:
    def test_miss(self):
        index = MemoryDedupIndex()
        assert index.lookup(D1) is None
        assert D1 not in index

    def test_record_then_lookup(self, make_remote_object):
        index = MemoryDedupIndex()
        obj = make_remote_object(D1)
        assert index.record(D1, obj) == obj
        assert index.lookup(D1) == obj
        assert D1 in index
        assert len(index) == 1

    def test_first_writer_wins(self, make_remote_object):
        index = MemoryDedupIndex()
        first = make_remote_object(D1, key="a.json")
        second = make_remote_object(D1, key="b.json")
        index.record(D1, first)
        held = index.record(D1, second)
        assert held == first
        assert index.lookup(D1) == first

    def test_rejects_local_object(self, make_remote_object):
        index = MemoryDedupIndex()
        local = make_remote_object(D1, location_uri="file:///tmp/fallback/1/a.json")
        with pytest.raises(ValueError, match="remote"):
            index.record(D1, local)
        assert len(index) == 0

    def test_rejects_error_sentinel(self, make_remote_object):
        index = MemoryDedupIndex()
        sentinel = make_remote_object(D1, location_uri="error://fallback-write-failed/1/x/0")
        with pytest.raises(ValueError):
            index.record(D1, sentinel)

    def test_rejects_digest_mismatch(self, make_remote_object):
        index = MemoryDedupIndex()
        with pytest.raises(ValueError, match="mismatch"):
            index.record(D2, make_remote_object(D1))

    def test_discard(self, make_remote_object):
        index = MemoryDedupIndex()
        index.record(D1, make_remote_object(D1))
        index.discard(D1)
        index.discard(D1)
        assert index.lookup(D1) is None


class TestEviction:
    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            MemoryDedupIndex(capacity=0)

    def test_evicts_least_recently_used(self, make_remote_object):
        index = MemoryDedupIndex(capacity=2)
        index.record(D1, make_remote_object(D1, key="1.json"))
        index.record(D2, make_remote_object(D2, key="2.json"))
        index.lookup(D1)  # D2 is now least recently used
        index.record(D3, make_remote_object(D3, key="3.json"))

        assert len(index) == 2
        assert index.lookup(D2) is None
        assert index.lookup(D1) is not None
        assert index.lookup(D3) is not None
        assert index.evictions == 1

    def test_entries_order(self, make_remote_object):
        index = MemoryDedupIndex()
        index.record(D1, make_remote_object(D1, key="1.json"))
        index.record(D2, make_remote_object(D2, key="2.json"))
        index.lookup(D1)
        assert [e.digest for e in index.entries()] == [D2, D1]

    def test_load_respects_capacity(self, make_remote_object):
        source = MemoryDedupIndex()
        for digest, key in ((D1, "1.json"), (D2, "2.json"), (D3, "3.json")):
            source.record(digest, make_remote_object(digest, key=key))

        target = MemoryDedupIndex(capacity=2)
        target.load(source.entries())
        assert [e.digest for e in target.entries()] == [D2, D3]

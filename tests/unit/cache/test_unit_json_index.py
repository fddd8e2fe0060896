# tests/unit/cache/test_unit_json_index.py — v1
"""Tests for cache/json_index.py — dedup index persisted to a JSON file."""

from __future__ import annotations

import json

from repairsync.cache.fingerprint import compute_digest
from repairsync.cache.json_index import JsonDedupIndex

D1 = compute_digest(b"one")
D2 = compute_digest(b"two")


class TestJsonDedupIndex:
    def test_missing_file_starts_empty(self, tmp_path):
        index = JsonDedupIndex(tmp_path / "index.json")
        assert len(index) == 0

    def test_record_writes_file(self, tmp_path, make_remote_object):
        path = tmp_path / "nested" / "index.json"
        index = JsonDedupIndex(path)
        index.record(D1, make_remote_object(D1))

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["version"] == 1
        assert [e["digest"] for e in data["entries"]] == [D1]
        assert not path.with_suffix(".json.tmp").exists()

    def test_survives_restart(self, tmp_path, make_remote_object):
        path = tmp_path / "index.json"
        obj = make_remote_object(D1, key="session_139_abc.json")
        JsonDedupIndex(path).record(D1, obj)

        reloaded = JsonDedupIndex(path)
        held = reloaded.lookup(D1)
        assert held is not None
        assert held.location_uri == obj.location_uri
        assert held.content_digest == D1

    def test_discard_persists(self, tmp_path, make_remote_object):
        path = tmp_path / "index.json"
        index = JsonDedupIndex(path)
        index.record(D1, make_remote_object(D1, key="1.json"))
        index.record(D2, make_remote_object(D2, key="2.json"))
        index.discard(D1)

        reloaded = JsonDedupIndex(path)
        assert reloaded.lookup(D1) is None
        assert reloaded.lookup(D2) is not None

    def test_corrupt_file_is_ignored(self, tmp_path):
        path = tmp_path / "index.json"
        path.write_text("{not json", encoding="utf-8")
        index = JsonDedupIndex(path)
        assert len(index) == 0

    def test_capacity_applies_on_load(self, tmp_path, make_remote_object):
        path = tmp_path / "index.json"
        index = JsonDedupIndex(path)
        index.record(D1, make_remote_object(D1, key="1.json"))
        index.record(D2, make_remote_object(D2, key="2.json"))

        reloaded = JsonDedupIndex(path, capacity=1)
        assert len(reloaded) == 1
        assert reloaded.lookup(D2) is not None

    def test_flush_snapshots_under_write_lock(self, tmp_path, make_remote_object):
        index = JsonDedupIndex(tmp_path / "index.json")
        held = []
        entries = index.entries

        def tracking_entries():
            held.append(index._write_lock.locked())
            return entries()

        index.entries = tracking_entries
        index.record(D1, make_remote_object(D1))

        assert held == [True]

# src/cache/index_factory.py — v1
"""Factory for dedup index instantiation."""

from __future__ import annotations

from repairsync.cache.base_dedup_index import BaseDedupIndex
from repairsync.config.settings import Settings


def create_dedup_index(settings: Settings | None = None) -> BaseDedupIndex:
    """Instantiate the configured dedup index backend.

    Args:
        settings: Application settings. Defaults to an in-memory index.

    Returns:
        Configured BaseDedupIndex implementation.
    """
    backend = "memory" if settings is None else settings.dedup_index_backend
    capacity = 10_000 if settings is None else settings.dedup_index_capacity

    if backend == "memory":
        from repairsync.cache.memory_index import MemoryDedupIndex
        return MemoryDedupIndex(capacity=capacity)

    if backend == "json":
        from repairsync.cache.json_index import JsonDedupIndex
        assert settings is not None
        return JsonDedupIndex(
            path=settings.resolved_dedup_index_path, capacity=capacity,
        )

    raise ValueError(f"Unsupported dedup index backend: {backend!r}")

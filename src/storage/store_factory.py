# src/storage/store_factory.py — v1
"""Factory: instantiate object store and fallback store from configuration."""

from __future__ import annotations

from repairsync.config.settings import Settings
from repairsync.core.clock import Clock
from repairsync.storage.base_object_store import BaseObjectStore
from repairsync.storage.local_store import LocalFallbackStore


def create_object_store(settings: Settings, clock: Clock | None = None) -> BaseObjectStore:
    """Create the remote object store based on settings.

    Raises:
        ValueError: If the backend is not supported or incompletely configured.
    """
    if settings.object_store_backend == "memory":
        from repairsync.storage.memory_store import InMemoryObjectStore
        return InMemoryObjectStore(clock=clock)

    if settings.object_store_backend == "s3":
        from repairsync.storage.s3_store import S3ObjectStore
        if not settings.object_store_bucket:
            raise ValueError(
                "OBJECT_STORE_BUCKET must be set when OBJECT_STORE_BACKEND=s3"
            )
        return S3ObjectStore(
            bucket=settings.object_store_bucket,
            prefix=settings.object_store_prefix,
            region=settings.object_store_region or None,
            endpoint_url=settings.object_store_endpoint_url or None,
            public_base_url=settings.object_store_public_base_url or None,
            timeout_s=settings.put_timeout_s,
            clock=clock,
        )

    raise ValueError(f"Unsupported object store backend: {settings.object_store_backend!r}")


def create_fallback_store(settings: Settings, clock: Clock | None = None) -> LocalFallbackStore:
    """Create the local fallback store rooted at FALLBACK_DIR."""
    return LocalFallbackStore(base_dir=settings.resolved_fallback_dir, clock=clock)

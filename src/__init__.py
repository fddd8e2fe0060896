# src/__init__.py — v1
"""repairsync: session-data synchronization and object-store deduplication.

Usage:
    from repairsync.api.facade import SyncFacade
    facade = SyncFacade.from_settings()
    obj = await facade.sync_stage(139, "submission", {"deviceType": "chair"})
"""

from repairsync.version import __version__

__all__ = ["__version__"]

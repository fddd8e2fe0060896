# src/sync/stats.py — v1
"""Per-process counters for sync outcomes."""

from __future__ import annotations

from pydantic import BaseModel


class SyncStats(BaseModel):
    """Counters updated by SyncFacade and FallbackReplayer."""

    remote_writes: int = 0
    dedup_hits: int = 0
    short_circuits: int = 0
    retries: int = 0
    transient_failures: int = 0
    permanent_failures: int = 0
    fallbacks: int = 0
    errors: int = 0

    @property
    def store_failures(self) -> int:
        return self.transient_failures + self.permanent_failures

    def reset(self) -> None:
        for name in type(self).model_fields:
            setattr(self, name, 0)

# src/cache/models.py — v1
"""Dedup index models: DedupEntry."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from repairsync.storage.models import StorageObject


class DedupEntry(BaseModel):
    """Maps a content digest to the remote object first stored for it."""

    model_config = ConfigDict(frozen=True)

    digest: str
    storage_object: StorageObject
    recorded_at: datetime

    @property
    def location_uri(self) -> str:
        return self.storage_object.location_uri

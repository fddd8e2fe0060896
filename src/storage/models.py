# src/storage/models.py — v1
"""Storage domain models: StorageObject, StoreStatus.

A StorageObject is created at the moment bytes are written (remote or
local) and never updated afterwards. The location scheme tells callers
where the bytes went.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, computed_field

REMOTE_SCHEMES = ("https://", "http://", "objstore://")
LOCAL_SCHEME = "file://"
ERROR_SCHEME = "error://"

JSON_CONTENT_TYPE = "application/json"


def location_backend(location_uri: str) -> Literal["remote", "local", "error"]:
    """Classify a location URI by its scheme."""
    if location_uri.startswith(LOCAL_SCHEME):
        return "local"
    if location_uri.startswith(REMOTE_SCHEMES):
        return "remote"
    return "error"


class StorageObject(BaseModel):
    """Result of any persist operation."""

    model_config = ConfigDict(frozen=True)

    key: str
    location_uri: str
    content_digest: str
    size_bytes: int
    content_type: str = JSON_CONTENT_TYPE
    created_at: datetime
    error: str | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def backend(self) -> Literal["remote", "local", "error"]:
        return location_backend(self.location_uri)

    @property
    def is_remote(self) -> bool:
        return self.backend == "remote"

    @property
    def is_local(self) -> bool:
        return self.backend == "local"

    @property
    def is_error(self) -> bool:
        return self.backend == "error"


class StoreStatus(BaseModel):
    """Reachability check result for an object store."""

    is_configured: bool
    backend: str
    bucket: str
    message: str | None = None

# src/sync/models.py — v1
"""Sync domain models: StageName, SessionDocument.

See also storage/models.py for StorageObject.
"""

from __future__ import annotations

from typing import Any, Literal, get_args

from pydantic import BaseModel, Field

from repairsync.storage.models import StorageObject

StageName = Literal[
    "submission",
    "diagnostics",
    "issueConfirmation",
    "repairGuide",
    "interactions",
    "analytics",
]

STAGE_NAMES: tuple[str, ...] = get_args(StageName)

# Stages that accumulate items via append().
LIST_STAGES: tuple[str, ...] = ("interactions", "analytics")

# Stages a journey needs before it is exported as training data.
COMPLETE_JOURNEY_STAGES: tuple[str, ...] = ("diagnostics", "issueConfirmation", "repairGuide")

SNAPSHOT_SCHEMA_VERSION = 1


def validate_stage(stage: str) -> StageName:
    """Return stage as a StageName.

    Raises:
        ValueError: If stage is not a known stage name.
    """
    if stage not in STAGE_NAMES:
        raise ValueError(
            f"Unknown stage {stage!r}; expected one of {', '.join(STAGE_NAMES)}"
        )
    return stage  # type: ignore[return-value]


class SessionDocument(BaseModel):
    """Consolidated per-session state.

    revision counts content-changing merges and is used to tell whether a
    persisted snapshot already includes a caller's fragment. version counts
    successful remote persists. Neither is part of the serialized snapshot.
    """

    session_id: int
    stages: dict[StageName, Any] = Field(default_factory=dict)
    last_consolidated_digest: str | None = None
    last_object: StorageObject | None = None
    version: int = 0
    revision: int = 0
    # Latest state reached only the local fallback (or nothing at all).
    pending_fallback: bool = False

    @property
    def is_complete(self) -> bool:
        """True if every stage of a finished repair journey is present."""
        return all(stage in self.stages for stage in COMPLETE_JOURNEY_STAGES)

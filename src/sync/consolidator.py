# src/sync/consolidator.py — v1
"""Session consolidation: merge stage fragments into one document per session.

Fragments may arrive in any order and more than once; the last write per
stage wins. Snapshots are canonical JSON (sorted keys, compact separators)
of the stage content only, so identical content always produces identical
bytes regardless of arrival order, session id or persist history.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterator

from repairsync.core.errors import SerializationError
from repairsync.sync.models import (
    LIST_STAGES,
    SNAPSHOT_SCHEMA_VERSION,
    SessionDocument,
    StageName,
    validate_stage,
)

logger = logging.getLogger(__name__)

_MISSING = object()


def canonical_json(value: Any) -> str:
    """Deterministic JSON text for value.

    Raises:
        SerializationError: If value is not JSON-safe (sets, bytes, NaN, ...).
    """
    try:
        return json.dumps(
            value,
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        )
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Payload is not JSON-serializable: {e}") from e


def _normalize(payload: Any) -> tuple[Any, str]:
    """Detach payload from the caller's objects and return (value, canonical text)."""
    text = canonical_json(payload)
    return json.loads(text), text


class SessionConsolidator:
    """In-memory registry of SessionDocuments, one per session id."""

    def __init__(self) -> None:
        self._documents: dict[int, SessionDocument] = {}

    def get(self, session_id: int) -> SessionDocument | None:
        return self._documents.get(session_id)

    def require(self, session_id: int) -> SessionDocument:
        """Return the document for session_id.

        Raises:
            KeyError: If no fragment was ever merged for session_id.
        """
        document = self._documents.get(session_id)
        if document is None:
            raise KeyError(f"Unknown session: {session_id}")
        return document

    def merge(self, session_id: int, stage: str, payload: Any) -> SessionDocument:
        """Replace stages[stage] with payload (last write wins).

        The revision only moves when the stage content actually changes.
        Validation happens before any mutation.

        Raises:
            ValueError: If stage is unknown.
            SerializationError: If payload is not JSON-safe.
        """
        stage_name = validate_stage(stage)
        value, text = _normalize(payload)

        document = self._get_or_create(session_id)
        current = document.stages.get(stage_name, _MISSING)
        if current is not _MISSING and canonical_json(current) == text:
            logger.debug("Session %s stage %s unchanged", session_id, stage_name)
            return document

        document.stages[stage_name] = value
        document.revision += 1
        logger.debug(
            "Merged stage %s into session %s (revision %d)",
            stage_name, session_id, document.revision,
        )
        return document

    def append(self, session_id: int, stage: str, item: Any) -> SessionDocument:
        """Append item to a list-valued stage (interactions, analytics).

        Raises:
            ValueError: If stage is not list-valued or holds a non-list value.
            SerializationError: If item is not JSON-safe.
        """
        stage_name = validate_stage(stage)
        if stage_name not in LIST_STAGES:
            raise ValueError(
                f"Stage {stage_name!r} does not accept appends; use one of {', '.join(LIST_STAGES)}"
            )
        value, _ = _normalize(item)

        document = self._get_or_create(session_id)
        current = document.stages.get(stage_name, [])
        if not isinstance(current, list):
            raise ValueError(f"Stage {stage_name!r} of session {session_id} is not a list")

        document.stages[stage_name] = [*current, value]
        document.revision += 1
        return document

    def snapshot(self, session_id: int) -> bytes:
        """Canonical UTF-8 JSON of the session's stage content.

        Raises:
            KeyError: If the session is unknown.
        """
        document = self.require(session_id)
        return snapshot_bytes(document.stages)

    def documents(self) -> Iterator[SessionDocument]:
        """Documents in session id order."""
        for session_id in sorted(self._documents):
            yield self._documents[session_id]

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._documents

    def __len__(self) -> int:
        return len(self._documents)

    def _get_or_create(self, session_id: int) -> SessionDocument:
        document = self._documents.get(session_id)
        if document is None:
            document = SessionDocument(session_id=session_id)
            self._documents[session_id] = document
            logger.debug("Created session document %s", session_id)
        return document


def snapshot_bytes(stages: dict[StageName, Any]) -> bytes:
    """Serialize stage content the way SessionConsolidator.snapshot does."""
    return canonical_json(
        {"schema": SNAPSHOT_SCHEMA_VERSION, "stages": stages}
    ).encode("utf-8")


# src/logging/context.py — v1
"""Contextual logging support: attach session_id, stage and operation to log records.

Context variables follow asyncio tasks, so concurrent syncs for different
sessions each log with their own context.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

_session_id: contextvars.ContextVar[int | None] = contextvars.ContextVar(
    "session_id", default=None
)
_stage: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "stage", default=None
)
_operation: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "operation", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    session_id: int | None = None
    stage: str | None = None
    operation: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        session_id=_session_id.get(),
        stage=_stage.get(),
        operation=_operation.get(),
    )


def set_sync_context(
    session_id: int | None,
    operation: str,
    stage: str | None = None,
) -> None:
    """Set context for one facade operation (sync_stage, finalize, ...)."""
    _session_id.set(session_id)
    _operation.set(operation)
    _stage.set(stage)


def clear_context() -> None:
    """Reset all context variables."""
    _session_id.set(None)
    _stage.set(None)
    _operation.set(None)

# src/storage/layout.py — v1
"""Key and path conventions for remote artifacts and local fallback files.

Remote keys are flat (no folder namespacing). Local fallback files live at
{fallback_dir}/{session_id}/{stage}_{timestamp}.json.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from pathlib import Path

from repairsync.cache.fingerprint import short_digest

SESSION_KEY_PREFIX = "session"
DATASET_KEY_PREFIX = "repair_training_dataset"
DATASET_SESSION_DIR = "dataset"
FALLBACK_SUFFIX = ".json"

# Stage label used for forced consolidations (finalize, retries, exports).
CONSOLIDATED_STAGE = "consolidated"


def digest_key(prefix: str, digest: str) -> str:
    """Digest-derived key: identical content always maps to the same key."""
    return f"{prefix}_{short_digest(digest)}.json"


def random_key(prefix: str, timestamp: datetime) -> str:
    """Timestamp + random suffix key (duplicates are harmless)."""
    stamp = int(timestamp.timestamp() * 1000)
    return f"{prefix}_{stamp}_{uuid.uuid4().hex[:8]}.json"


def session_prefix(session_id: int | str) -> str:
    return f"{SESSION_KEY_PREFIX}_{session_id}"


def object_key(
    prefix: str,
    digest: str,
    timestamp: datetime,
    style: str = "digest",
) -> str:
    """Build a remote object key according to the configured key style."""
    if style == "random":
        return random_key(prefix, timestamp)
    return digest_key(prefix, digest)


def fallback_session_dir(base_dir: Path, session_id: int | str) -> Path:
    """Directory holding one session's fallback artifacts."""
    return base_dir / str(session_id)


def fallback_filename(stage: str, timestamp: datetime) -> str:
    """File name for a fallback artifact: {stage}_{timestamp}.json."""
    return f"{stage}_{timestamp.strftime('%Y%m%dT%H%M%S%fZ')}{FALLBACK_SUFFIX}"


def fallback_path(
    base_dir: Path, session_id: int | str, stage: str, timestamp: datetime,
) -> Path:
    return fallback_session_dir(base_dir, session_id) / fallback_filename(stage, timestamp)


def parse_fallback_path(base_dir: Path, path: Path) -> tuple[str, str]:
    """Return (session_id, stage) for a fallback file under base_dir.

    Raises:
        ValueError: If the path does not follow the fallback layout.
    """
    relative = path.relative_to(base_dir)
    if len(relative.parts) != 2 or relative.suffix != FALLBACK_SUFFIX:
        raise ValueError(f"Not a fallback artifact path: {path}")
    session_id = relative.parts[0]
    stage, sep, _ = relative.stem.rpartition("_")
    if not sep or not stage:
        raise ValueError(f"Not a fallback artifact path: {path}")
    return session_id, stage

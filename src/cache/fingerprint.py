# src/cache/fingerprint.py — v1
"""Content addressing: SHA-256 digests of exact payload bytes.

The digest is the dedup key. Byte-identical input always yields the same
digest; nothing weaker (size, timestamps) is used for deduplication.
"""

from __future__ import annotations

import hashlib

DIGEST_ALGORITHM = "sha256"
DIGEST_HEX_LENGTH = 64


def compute_digest(payload: bytes) -> str:
    """Return the SHA-256 hex digest of payload."""
    if not isinstance(payload, (bytes, bytearray, memoryview)):
        raise TypeError(f"compute_digest expects bytes, got {type(payload).__name__}")
    return hashlib.sha256(payload).hexdigest()


def short_digest(digest: str, length: int = 16) -> str:
    """Prefix of a digest, used in human-readable keys."""
    if length <= 0 or length > len(digest):
        raise ValueError(f"Invalid short digest length: {length}")
    return digest[:length]


def is_digest(value: str) -> bool:
    """Check that value looks like a full SHA-256 hex digest."""
    if len(value) != DIGEST_HEX_LENGTH:
        return False
    try:
        int(value, 16)
    except ValueError:
        return False
    return True

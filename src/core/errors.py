# src/core/errors.py — v1
"""Error taxonomy for the sync engine.

Store errors are always caught at the SyncFacade boundary and turned into a
local fallback (or an error:// sentinel). Only SerializationError reaches
callers as a raised exception, because it is detected before any I/O.
"""

from __future__ import annotations

import asyncio

# botocore error codes that will not fix themselves on retry.
_PERMANENT_CODES = frozenset({
    "AccessDenied",
    "AllAccessDisabled",
    "AuthorizationHeaderMalformed",
    "ExpiredToken",
    "InvalidAccessKeyId",
    "InvalidBucketName",
    "InvalidToken",
    "NoSuchBucket",
    "SignatureDoesNotMatch",
    "AccountProblem",
})

_PERMANENT_EXC_NAMES = frozenset({
    "NoCredentialsError",
    "PartialCredentialsError",
    "NoRegionError",
    "InvalidRegionError",
    "ParamValidationError",
})


class RepairSyncError(Exception):
    """Base class for all sync engine errors."""


class StoreError(RepairSyncError):
    """Object store operation failed."""

    def __init__(self, message: str, key: str | None = None, cause: Exception | None = None):
        self.key = key
        self.cause = cause
        super().__init__(message)


class TransientStoreError(StoreError):
    """Timeout, 5xx, throttling or connection failure. Retrying may help."""


class PermanentStoreError(StoreError):
    """Auth or configuration failure. Retrying will not help."""


class FallbackWriteError(RepairSyncError):
    """Local fallback write failed (disk full, permissions)."""

    def __init__(self, message: str, path: str | None = None, cause: Exception | None = None):
        self.path = path
        self.cause = cause
        super().__init__(message)


class SerializationError(RepairSyncError, ValueError):
    """Payload is not JSON-safe. Raised before any I/O."""


def classify_store_error(error: Exception, key: str | None = None) -> StoreError:
    """Convert an arbitrary store-layer exception into a StoreError.

    Already-classified errors are returned unchanged. botocore ClientError
    codes and exception names are mapped where they are known to be
    permanent; everything else is treated as transient.
    """
    if isinstance(error, StoreError):
        return error

    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        return TransientStoreError(f"Store operation timed out for {key!r}", key=key, cause=error)

    code = client_error_code(error)
    if code is not None:
        if code in _PERMANENT_CODES:
            return PermanentStoreError(f"Store rejected {key!r}: {code}", key=key, cause=error)
        return TransientStoreError(f"Store error for {key!r}: {code}", key=key, cause=error)

    if type(error).__name__ in _PERMANENT_EXC_NAMES:
        return PermanentStoreError(
            f"Store misconfigured ({type(error).__name__}): {error}", key=key, cause=error,
        )

    return TransientStoreError(
        f"Store error for {key!r} ({type(error).__name__}): {error}", key=key, cause=error,
    )


def client_error_code(error: Exception) -> str | None:
    """Extract the error code from a botocore ClientError-like exception."""
    response = getattr(error, "response", None)
    if not isinstance(response, dict):
        return None
    code = response.get("Error", {}).get("Code")
    return str(code) if code else None

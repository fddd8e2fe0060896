# src/storage/retry.py — v1
"""Bounded retry with exponential backoff for object store puts.

Every attempt is bounded by a timeout, and only transient failures are
retried. Permanent failures and exhausted retries re-raise the last
StoreError so the caller can fall back.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from repairsync.core.errors import PermanentStoreError, StoreError, classify_store_error

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryConfig:
    """Retry configuration for object store puts."""

    max_retries: int = 1
    base_delay_s: float = 0.5
    timeout_s: float = 10.0
    backoff_factor: float = 2.0
    jitter: bool = True


def compute_delay(config: RetryConfig, attempt: int) -> float:
    """Compute delay for a given retry (0-based)."""
    delay = config.base_delay_s * (config.backoff_factor ** attempt)
    if config.jitter:
        delay *= 0.5 + random.random()  # noqa: S311
    return delay


async def with_store_retry(
    fn: Callable[[], Awaitable[T]],
    config: RetryConfig,
    key: str | None = None,
    on_retry: Callable[[StoreError], None] | None = None,
) -> T:
    """Run a store call with a per-attempt timeout and bounded retries.

    Raises:
        StoreError: The classified error of the last attempt.
    """
    attempts = 0

    while True:
        try:
            return await asyncio.wait_for(fn(), timeout=config.timeout_s)
        except Exception as e:
            error = classify_store_error(e, key=key)
            attempts += 1

            if isinstance(error, PermanentStoreError) or attempts > config.max_retries:
                raise error from e

            delay = compute_delay(config, attempts - 1)
            logger.warning(
                "Put %s failed (%s), attempt %d/%d, retrying in %.2fs",
                key, error, attempts, config.max_retries + 1, delay,
            )
            if on_retry is not None:
                on_retry(error)
            await asyncio.sleep(delay)

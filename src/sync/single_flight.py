# src/sync/single_flight.py — v1
"""Per-key single-flight coordination.

At most one operation runs per key. The operation runs as its own task, so
cancelling any one caller (the first one included) only cancels that
caller's wait; everyone else still gets the operation's result or the
exception it raised. Tickets are removed when the task finishes, so the
next call for the key runs fresh. Keys are independent: an in-flight
operation never delays a different key.

The registry belongs to one event loop.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, Hashable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class SingleFlightTicket(Generic[T]):
    """Registry entry for one in-flight operation."""

    key: Hashable
    task: asyncio.Future[T]
    ref_count: int = field(default=1)


class SingleFlightGuard:
    """Deduplicate concurrent operations per key."""

    def __init__(self) -> None:
        self._tickets: dict[Hashable, SingleFlightTicket] = {}

    async def do(self, key: Hashable, fn: Callable[[], Awaitable[T]]) -> T:
        """Run fn for key, or join the operation already in flight for key.

        Raises:
            Exception: Whatever fn raised, delivered to every caller.
            asyncio.CancelledError: Only if this caller was cancelled, or
                the operation task itself was.
        """
        ticket = self._tickets.get(key)
        # A finished task whose release callback has not run yet is stale.
        if ticket is None or ticket.task.done():
            task = asyncio.ensure_future(fn())
            ticket = SingleFlightTicket(key=key, task=task)
            self._tickets[key] = ticket
            task.add_done_callback(functools.partial(self._release, key, ticket))
        else:
            ticket.ref_count += 1
            logger.debug("Joining in-flight operation for %r (%d callers)", key, ticket.ref_count)

        # shield: a cancelled caller must not cancel the shared task
        return await asyncio.shield(ticket.task)

    def in_flight(self, key: Hashable) -> bool:
        ticket = self._tickets.get(key)
        return ticket is not None and not ticket.task.done()

    def waiters(self, key: Hashable) -> int:
        """Number of callers sharing the in-flight operation for key (0 if idle)."""
        return self._tickets[key].ref_count if self.in_flight(key) else 0

    def __len__(self) -> int:
        return sum(1 for t in self._tickets.values() if not t.task.done())

    def _release(self, key: Hashable, ticket: SingleFlightTicket, task: asyncio.Future) -> None:
        if self._tickets.get(key) is ticket:
            del self._tickets[key]
        if task.cancelled():
            logger.debug("Operation for %r was cancelled", key)
        elif task.exception() is not None:
            # Retrieved here so a flight whose callers all left does not warn.
            logger.debug("Operation for %r failed: %s", key, task.exception())

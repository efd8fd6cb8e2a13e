"""Versioned result cache with in-flight computation deduplication.

Entries are keyed by resource id and tagged with the resource version they
were computed for. A write carrying an older version than the stored one is
ignored, so a slow, stale computation can never clobber a fresher result.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from ..indexer_logging import LogCategory, get_category_logger

logger = get_category_logger(LogCategory.CACHE)

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    """Cached data for a single resource version."""

    version: int
    data: T


@dataclass
class PendingComputation(Generic[T]):
    """A computation in flight for a resource."""

    key: str
    version: int
    task: "asyncio.Task[T]"


class ResultCache(Generic[T]):
    """Per-key versioned cache.

    All mutation happens synchronously between awaits, so the cache needs
    no locking on a single event loop.
    """

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry[T]] = {}
        self._pending: dict[str, PendingComputation[T]] = {}

    def get(self, key: str, version: int) -> T | None:
        """Get cached data only if it was stored for exactly this version."""
        entry = self._entries.get(key)
        if entry is not None and entry.version == version:
            return entry.data
        return None

    def has(self, key: str, version: int) -> bool:
        """Check for an entry stored for exactly this version, even a None one."""
        entry = self._entries.get(key)
        return entry is not None and entry.version == version

    def set(self, key: str, version: int, data: T) -> bool:
        """Store data for a version.

        Returns:
            False if a newer version is already stored (write ignored).
        """
        existing = self._entries.get(key)
        if existing is not None and existing.version > version:
            logger.debug(
                f"Ignoring stale write for {key}: v{version} < stored v{existing.version}"
            )
            return False
        self._entries[key] = CacheEntry(version=version, data=data)
        return True

    def get_or_compute(
        self,
        key: str,
        version: int,
        computation: Callable[[], Awaitable[T]],
    ) -> "asyncio.Task[T]":
        """Join an in-flight computation or start a new one.

        An in-flight computation for the same key is shared when its version
        is at least the requested one. Otherwise ``computation`` is started
        as a new task. The pending entry is dropped when the task finishes,
        whether it succeeded or failed; failures are never cached.

        Must be called with a running event loop.

        Returns:
            The task producing the data; await it for the result.
        """
        pending = self._pending.get(key)
        if pending is not None and pending.version >= version:
            logger.debug(f"Joining in-flight computation for {key} v{pending.version}")
            return pending.task

        task: asyncio.Task[T] = asyncio.ensure_future(computation())
        self._pending[key] = PendingComputation(key=key, version=version, task=task)

        def _clear_pending(done: "asyncio.Task[T]") -> None:
            current = self._pending.get(key)
            if current is not None and current.task is done:
                del self._pending[key]
            if not done.cancelled() and done.exception() is not None:
                logger.debug(f"Computation for {key} v{version} failed: {done.exception()}")

        task.add_done_callback(_clear_pending)
        return task

    def has_pending(self, key: str) -> bool:
        """Check if there's a pending computation for a key."""
        return key in self._pending

    def is_current(self, key: str, task: "asyncio.Task[Any] | None") -> bool:
        """Check whether a task is still the registered computation for a key.

        False once the task was superseded by a newer version or dropped by
        delete() or clear().
        """
        pending = self._pending.get(key)
        return pending is not None and task is not None and pending.task is task

    def delete(self, key: str) -> None:
        """Drop cached and pending state for a key."""
        self._entries.pop(key, None)
        self._pending.pop(key, None)

    def clear(self) -> None:
        """Drop all cached and pending state."""
        self._entries.clear()
        self._pending.clear()

    @property
    def size(self) -> int:
        """Number of cached resources."""
        return len(self._entries)

    @property
    def pending_count(self) -> int:
        """Number of computations in flight."""
        return len(self._pending)

    def get_stats(self) -> dict[str, Any]:
        """Get cache statistics."""
        return {
            "entries": self.size,
            "pending": self.pending_count,
        }

"""Adaptive, coalescing refresh scheduler.

Each key moves through an explicit state machine driven by one
``loop.call_later`` timer and monotonic version comparisons:

    IDLE -> SCHEDULED -> EXECUTING -> IDLE
                             |
                             +-> QUEUED -> SCHEDULED (follow-up)

At most one runner per key is in flight. Requests arriving while a runner
executes collapse into a single follow-up carrying the highest version seen.
Keys whose runners are slow get a longer debounce.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..errors import ComputationFailure
from ..indexer_logging import LogCategory, get_category_logger

logger = get_category_logger(LogCategory.SCHEDULER)

Runner = Callable[[], Awaitable[Any]]


class RefreshState(Enum):
    """Scheduling state of a key."""

    IDLE = "idle"
    SCHEDULED = "scheduled"  # Timer armed
    EXECUTING = "executing"  # Runner in flight
    QUEUED = "queued"  # Runner in flight with a follow-up waiting


@dataclass
class ScheduleEntry:
    """A refresh request waiting for its timer or for the current run."""

    version: int
    runner: Runner
    completion: "asyncio.Future[None]"
    immediate: bool = False
    timer: asyncio.TimerHandle | None = None


def _resolve(future: "asyncio.Future[None]") -> None:
    if not future.done():
        future.set_result(None)


class RefreshScheduler:
    """Per-key debounce, coalescing and backpressure for refresh runners."""

    def __init__(
        self,
        debounce_ms: float = 50.0,
        heavy_debounce_ms: float = 200.0,
        heavy_threshold_ms: float = 120.0,
        smoothing: float = 0.3,
    ):
        """Initialize the scheduler.

        Args:
            debounce_ms: Default delay before a scheduled runner starts.
            heavy_debounce_ms: Delay used for keys whose average runner
                duration exceeds heavy_threshold_ms.
            heavy_threshold_ms: Average duration above which a key is heavy.
            smoothing: Weight of the newest sample in the moving average.
        """
        self.debounce_ms = debounce_ms
        self.heavy_debounce_ms = heavy_debounce_ms
        self.heavy_threshold_ms = heavy_threshold_ms
        self.smoothing = smoothing

        self._scheduled: dict[str, ScheduleEntry] = {}
        self._executing: dict[str, tuple[int, asyncio.Task[None]]] = {}
        self._queued: dict[str, ScheduleEntry] = {}
        self._averages: dict[str, float] = {}

    def state(self, key: str) -> RefreshState:
        """Current state of a key."""
        if key in self._executing:
            return RefreshState.QUEUED if key in self._queued else RefreshState.EXECUTING
        if key in self._scheduled:
            return RefreshState.SCHEDULED
        return RefreshState.IDLE

    def schedule_refresh(
        self,
        key: str,
        version: int,
        runner: Runner,
        immediate: bool = False,
    ) -> "asyncio.Future[None]":
        """Request a refresh of a key at a version.

        Must be called with a running event loop.

        Args:
            key: Resource key.
            version: Resource version the runner will refresh to.
            runner: Coroutine function performing the refresh.
            immediate: Skip the debounce delay.

        Returns:
            Future resolved when the request has run or was superseded,
            or rejected with the runner's exception.
        """
        loop = asyncio.get_running_loop()

        executing = self._executing.get(key)
        if executing is not None:
            return self._queue_follow_up(key, version, runner, immediate, executing[0])

        existing = self._scheduled.get(key)
        if existing is not None:
            if version < existing.version:
                logger.debug(f"Ignoring v{version} for {key}: v{existing.version} already armed")
                return existing.completion
            self._disarm(existing)
            del self._scheduled[key]
            _resolve(existing.completion)

        entry = ScheduleEntry(
            version=version,
            runner=runner,
            completion=loop.create_future(),
            immediate=immediate,
        )
        self._arm(key, entry)
        return entry.completion

    def cancel_scheduled_refresh(self, key: str) -> None:
        """Cancel not-yet-started work for a key.

        An executing runner is left to finish. Completions of cancelled
        requests are resolved, not rejected.
        """
        entry = self._scheduled.pop(key, None)
        if entry is not None:
            self._disarm(entry)
            _resolve(entry.completion)

        queued = self._queued.pop(key, None)
        if queued is not None:
            _resolve(queued.completion)

    def record_refresh_duration(self, key: str, duration_ms: float) -> float:
        """Fold a runner duration into the key's moving average.

        Returns:
            The updated average.
        """
        previous = self._averages.get(key)
        if previous is None:
            average = duration_ms
        else:
            average = previous * (1 - self.smoothing) + duration_ms * self.smoothing
        self._averages[key] = average
        return average

    def get_average_refresh_duration(self, key: str) -> float | None:
        return self._averages.get(key)

    def compute_delay_ms(self, key: str) -> float:
        """Debounce delay for the next run of a key."""
        average = self._averages.get(key)
        if average is not None and average > self.heavy_threshold_ms:
            return self.heavy_debounce_ms
        return self.debounce_ms

    def forget(self, key: str) -> None:
        """Drop all pending work and timing history for a key."""
        self.cancel_scheduled_refresh(key)
        self._averages.pop(key, None)

    def dispose(self) -> None:
        """Cancel all pending work; executing runners finish on their own."""
        for key in list(self._scheduled) + list(self._queued):
            self.cancel_scheduled_refresh(key)
        self._averages.clear()

    def get_stats(self) -> dict[str, Any]:
        """Get scheduler statistics."""
        return {
            "scheduled": len(self._scheduled),
            "executing": len(self._executing),
            "queued": len(self._queued),
            "tracked_keys": len(self._averages),
        }

    def _queue_follow_up(
        self,
        key: str,
        version: int,
        runner: Runner,
        immediate: bool,
        executing_version: int,
    ) -> "asyncio.Future[None]":
        loop = asyncio.get_running_loop()
        queued = self._queued.get(key)

        stale = version < executing_version or (
            queued is not None and version < queued.version
        )
        if stale:
            logger.debug(f"Dropping stale v{version} for {key} while executing")
            dropped: asyncio.Future[None] = loop.create_future()
            dropped.set_result(None)
            return dropped

        entry = ScheduleEntry(
            version=version,
            runner=runner,
            completion=loop.create_future(),
            immediate=immediate,
        )
        if queued is not None:
            _resolve(queued.completion)
        self._queued[key] = entry
        logger.debug(f"Queued follow-up v{version} for {key}")
        return entry.completion

    def _arm(self, key: str, entry: ScheduleEntry) -> None:
        loop = asyncio.get_running_loop()
        delay_ms = 0.0 if entry.immediate else self.compute_delay_ms(key)
        entry.timer = loop.call_later(delay_ms / 1000, self._fire, key, entry)
        self._scheduled[key] = entry
        logger.debug(f"Armed refresh for {key} v{entry.version} in {delay_ms:.0f}ms")

    @staticmethod
    def _disarm(entry: ScheduleEntry) -> None:
        if entry.timer is not None:
            entry.timer.cancel()
            entry.timer = None

    def _fire(self, key: str, entry: ScheduleEntry) -> None:
        if self._scheduled.get(key) is not entry:
            return
        del self._scheduled[key]
        entry.timer = None
        task = asyncio.get_running_loop().create_task(self._execute(key, entry))
        self._executing[key] = (entry.version, task)

    async def _execute(self, key: str, entry: ScheduleEntry) -> None:
        try:
            await entry.runner()
        except Exception as e:
            logger.warning(str(ComputationFailure(key, entry.version, e)))
            if not entry.completion.done():
                entry.completion.set_exception(e)
        else:
            _resolve(entry.completion)
        finally:
            # Covers cancellation of the runner task
            _resolve(entry.completion)
            self._executing.pop(key, None)
            follow_up = self._queued.pop(key, None)
            if follow_up is not None:
                self._arm(key, follow_up)

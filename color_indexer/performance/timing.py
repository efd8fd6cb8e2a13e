"""Performance timing utilities.

This module provides tools for measuring and logging execution times:
- @timed decorator for synchronous function timing
- PerformanceTimer context manager for timing code blocks, including
  awaited refresh runners
"""

import functools
import time
from collections.abc import Callable
from typing import Any, ParamSpec, TypeVar

from ..indexer_logging import get_logger

P = ParamSpec("P")
T = TypeVar("T")


def timed(
    operation_name: str | None = None,
) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """Decorator to time function execution and log results at DEBUG level.

    Args:
        operation_name: Custom name for the operation (defaults to function name).

    Example:
        >>> @timed("scan_css")
        ... def scan(text: str) -> ScanResult:
        ...     ...
    """

    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        @functools.wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            op_name = operation_name or func.__name__
            with PerformanceTimer(op_name):
                return func(*args, **kwargs)

        return wrapper

    return decorator


class PerformanceTimer:
    """Context manager for timing code blocks.

    The duration is available as an attribute after the context exits.

    Attributes:
        operation_name: Name of the operation being timed.
        auto_log: Whether to automatically log timing.
        duration_ms: Execution time in milliseconds.

    Example:
        >>> with PerformanceTimer("refresh:editor-1") as timer:
        ...     await runner()
        >>> scheduler.record_refresh_duration("editor-1", timer.duration_ms)
    """

    def __init__(
        self,
        operation_name: str,
        auto_log: bool = True,
        extra: dict[str, Any] | None = None,
    ):
        """Initialize the timer.

        Args:
            operation_name: Name of the operation being timed.
            auto_log: Whether to log timing automatically on exit.
            extra: Additional fields attached to the log record.
        """
        self.operation_name = operation_name
        self.auto_log = auto_log
        self.extra = extra or {}
        self.start_time: float = 0
        self.end_time: float = 0
        self.duration_ms: float = 0

    def __enter__(self) -> "PerformanceTimer":
        """Start timing."""
        self.start_time = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Stop timing and optionally log."""
        self.end_time = time.perf_counter()
        self.duration_ms = (self.end_time - self.start_time) * 1000

        if not self.auto_log:
            return

        extra = {
            "duration_ms": self.duration_ms,
            "operation": self.operation_name,
            **self.extra,
        }
        logger = get_logger()
        if exc_type is None:
            logger.debug(
                f"[PERF] {self.operation_name}: {self.duration_ms:.2f}ms", extra=extra
            )
        else:
            logger.debug(
                f"[PERF] {self.operation_name} failed after {self.duration_ms:.2f}ms",
                extra=extra,
            )

"""Performance timing utilities."""

from .timing import PerformanceTimer, timed

__all__ = ["PerformanceTimer", "timed"]

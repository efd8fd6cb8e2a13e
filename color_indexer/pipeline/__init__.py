"""Caching, refresh scheduling and the pipeline coordinator."""

from .cache import CacheEntry, PendingComputation, ResultCache
from .coordinator import ColorPipeline, DocumentSnapshot
from .scheduler import RefreshScheduler, RefreshState

__all__ = [
    "CacheEntry",
    "ColorPipeline",
    "DocumentSnapshot",
    "PendingComputation",
    "RefreshScheduler",
    "RefreshState",
    "ResultCache",
]

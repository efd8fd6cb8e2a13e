"""Pipeline coordinator wiring detection, caching and refresh scheduling.

The coordinator owns one instance of each component; nothing here is a
module-level singleton, so independent pipelines can coexist (tests, CLI).
"""

import asyncio
import inspect
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar, cast

from ..config import PipelineConfig
from ..detection import ColorDetector, ColorOccurrence
from ..errors import CircularReferenceError
from ..indexer_logging import LogCategory, get_category_logger
from ..performance import PerformanceTimer
from ..registry import DeclarationRegistry, VariableResolver
from ..scanner import CSSVariableScanner, ScanResult
from .cache import ResultCache
from .scheduler import RefreshScheduler, Runner

logger = get_category_logger(LogCategory.PIPELINE)

T = TypeVar("T")

ApplyCallback = Callable[[list[ColorOccurrence]], Any]


@dataclass(frozen=True)
class DocumentSnapshot:
    """Immutable view of a document at one version."""

    resource_id: str
    version: int
    text: str
    language_id: str = "plaintext"
    path: str | None = None


class ColorPipeline:
    """Coordinates the declaration index, detection, cache and scheduler."""

    def __init__(
        self,
        config: PipelineConfig | None = None,
        registry: DeclarationRegistry | None = None,
        cache: ResultCache[Any] | None = None,
        scheduler: RefreshScheduler | None = None,
        resolver: VariableResolver | None = None,
        on_circular_reference: Callable[[CircularReferenceError], None] | None = None,
    ):
        """Initialize the pipeline.

        Args:
            config: Pipeline configuration (defaults when omitted).
            registry: Declaration registry; a resolver passed in brings its own.
            cache: Result cache for detected colors.
            scheduler: Refresh scheduler; built from config.scheduler when omitted.
            resolver: var() resolver over the registry.
            on_circular_reference: Callback for a resolver built here.
        """
        self.config = config if config is not None else PipelineConfig()

        if resolver is not None:
            self.resolver = resolver
            self.registry = resolver.registry
        else:
            self.registry = registry if registry is not None else DeclarationRegistry()
            self.resolver = VariableResolver(self.registry, on_circular_reference)

        self.cache: ResultCache[Any] = cache if cache is not None else ResultCache()

        if scheduler is None:
            settings = self.config.scheduler
            scheduler = RefreshScheduler(
                debounce_ms=settings.debounce_ms,
                heavy_debounce_ms=settings.heavy_debounce_ms,
                heavy_threshold_ms=settings.heavy_threshold_ms,
                smoothing=settings.duration_smoothing,
            )
        self.scheduler = scheduler

        self.scanner = CSSVariableScanner(self.resolver)
        self.detector = ColorDetector(self.resolver)

        # resource_id -> newest version seen by refresh_document
        self._latest_versions: dict[str, int] = {}
        # resource_id -> version last indexed for declarations
        self._indexed_versions: dict[str, int] = {}

    # Cache and scheduling

    async def ensure_data(
        self,
        resource_id: str,
        version: int,
        compute_fn: Callable[[], Awaitable[T]],
    ) -> T:
        """Return cached data for a version, computing it at most once.

        Concurrent callers for the same key share one computation. A failed
        computation propagates to every caller awaiting it and is not cached.
        A result whose computation was dropped by close_resource() or an
        index change while it ran is returned but not stored.
        """
        if self.cache.has(resource_id, version):
            return cast(T, self.cache.get(resource_id, version))

        async def compute_and_store() -> T:
            data = await compute_fn()
            if self.cache.is_current(resource_id, asyncio.current_task()):
                self.cache.set(resource_id, version, data)
            else:
                logger.debug(
                    f"Discarding result for {resource_id} v{version}: computation dropped"
                )
            return data

        task = self.cache.get_or_compute(resource_id, version, compute_and_store)
        # One cancelled caller must not cancel the shared computation
        return await asyncio.shield(task)

    def schedule_refresh(
        self,
        resource_id: str,
        version: int,
        runner: Runner,
        immediate: bool = False,
    ) -> "asyncio.Future[None]":
        """Schedule a runner, feeding its duration back into the scheduler."""

        async def timed_runner() -> None:
            timer = PerformanceTimer(
                f"refresh:{resource_id}",
                extra={"resource_id": resource_id, "version": version},
            )
            try:
                with timer:
                    await runner()
            finally:
                self.scheduler.record_refresh_duration(resource_id, timer.duration_ms)

        return self.scheduler.schedule_refresh(resource_id, version, timed_runner, immediate)

    # Detection

    def should_process(self, language_id: str) -> bool:
        """Check whether documents of a language are scanned for colors."""
        languages = self.config.languages
        return "*" in languages or language_id in languages

    def is_css_document(self, snapshot: DocumentSnapshot) -> bool:
        """Check whether a document declares custom properties."""
        if snapshot.language_id in self.config.css_languages:
            return True
        if snapshot.path is None:
            return False
        return Path(snapshot.path).suffix.lower() in self.config.css_extensions

    def collect_colors(self, snapshot: DocumentSnapshot) -> list[ColorOccurrence]:
        """Detect colors in a snapshot, indexing its declarations first if CSS."""
        if self.is_css_document(snapshot):
            self._index_snapshot(snapshot)
        return self.detector.collect(snapshot.text)

    async def ensure_colors(self, snapshot: DocumentSnapshot) -> list[ColorOccurrence]:
        """Cached color detection for a snapshot's version."""

        async def compute() -> list[ColorOccurrence]:
            return self.collect_colors(snapshot)

        return await self.ensure_data(snapshot.resource_id, snapshot.version, compute)

    def refresh_document(
        self,
        snapshot: DocumentSnapshot,
        apply: ApplyCallback,
        immediate: bool = False,
    ) -> "asyncio.Future[None]":
        """Schedule detection for a snapshot and hand the result to ``apply``.

        ``apply`` is skipped when a newer version of the document was
        requested while detection ran. It may be a plain function or a
        coroutine function.
        """
        resource_id = snapshot.resource_id
        latest = self._latest_versions.get(resource_id)
        if latest is None or snapshot.version > latest:
            self._latest_versions[resource_id] = snapshot.version

        async def runner() -> None:
            occurrences = await self.ensure_colors(snapshot)
            newest = self._latest_versions.get(resource_id, snapshot.version)
            if newest > snapshot.version:
                logger.debug(
                    f"Skipping stale colors for {resource_id}: "
                    f"v{snapshot.version} < v{newest}"
                )
                return
            result = apply(occurrences)
            if inspect.isawaitable(result):
                await result

        return self.schedule_refresh(resource_id, snapshot.version, runner, immediate)

    # Declaration index

    def index_document(self, origin_id: str, text: str) -> ScanResult:
        """Scan CSS text and replace the declarations it contributed.

        Cached colors of every document are dropped, since any of them may
        reference the changed declarations.
        """
        result = self._index(origin_id, text)
        self._invalidate_colors()
        return result

    def remove_origin(self, origin_id: str) -> int:
        """Drop the declarations contributed by one source.

        Returns:
            Number of declarations removed.
        """
        removed = self.registry.remove_by_origin(origin_id)
        self._indexed_versions.pop(origin_id, None)
        if removed:
            self._invalidate_colors()
        return removed

    def reindex(self, documents: Iterable[tuple[str, str]]) -> int:
        """Rebuild the declaration index from (origin_id, text) pairs.

        Returns:
            Number of custom property names in the rebuilt index.
        """
        self.registry.clear()
        self._indexed_versions.clear()
        count = 0
        for origin_id, text in documents:
            self._index(origin_id, text)
            count += 1
        self._invalidate_colors()
        logger.info(
            f"Indexed {count} documents: {self.registry.variable_count} variables, "
            f"{self.registry.class_count} class colors"
        )
        return self.registry.variable_count

    # Lifecycle

    def close_resource(self, resource_id: str) -> None:
        """Forget per-document state for a closed document."""
        self.scheduler.forget(resource_id)
        self.cache.delete(resource_id)
        self._latest_versions.pop(resource_id, None)

    def dispose(self) -> None:
        """Cancel pending refreshes and drop cached state."""
        self.scheduler.dispose()
        self.cache.clear()
        self._latest_versions.clear()
        self._indexed_versions.clear()
        logger.debug("Pipeline disposed")

    def get_stats(self) -> dict[str, Any]:
        """Get statistics for every component."""
        return {
            "registry": self.registry.get_stats(),
            "cache": self.cache.get_stats(),
            "scheduler": self.scheduler.get_stats(),
        }

    def _index(self, origin_id: str, text: str) -> ScanResult:
        result = self.scanner.scan(text, origin_id)
        self.registry.replace_by_origin(origin_id, result.variables, result.classes)
        return result

    def _index_snapshot(self, snapshot: DocumentSnapshot) -> None:
        if self._indexed_versions.get(snapshot.resource_id) == snapshot.version:
            return
        self._index(snapshot.resource_id, snapshot.text)
        self._indexed_versions[snapshot.resource_id] = snapshot.version

    def _invalidate_colors(self) -> None:
        if self.cache.size:
            logger.debug(f"Invalidating {self.cache.size} cached color results")
        self.cache.clear()

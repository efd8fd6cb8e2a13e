"""Unit tests for the pipeline coordinator."""

import asyncio
from unittest.mock import MagicMock, patch

import pytest

from color_indexer.config import PipelineConfig
from color_indexer.detection import OccurrenceKind
from color_indexer.pipeline import ColorPipeline, DocumentSnapshot, ResultCache
from color_indexer.registry import DeclarationRegistry, VariableResolver


class TestConstruction:
    """Tests for component ownership."""

    def test_defaults(self):
        """A bare pipeline builds its own components from config."""
        pipeline = ColorPipeline()
        assert pipeline.scheduler.debounce_ms == 50
        assert pipeline.scheduler.heavy_debounce_ms == 200
        assert pipeline.scheduler.heavy_threshold_ms == 120
        assert pipeline.resolver.registry is pipeline.registry

    def test_injected_components(self):
        """Passed-in instances are used as-is."""
        registry = DeclarationRegistry()
        cache: ResultCache = ResultCache()
        pipeline = ColorPipeline(registry=registry, cache=cache)
        assert pipeline.registry is registry
        assert pipeline.cache is cache

    def test_resolver_brings_its_registry(self):
        """An injected resolver decides which registry is used."""
        resolver = VariableResolver(DeclarationRegistry())
        pipeline = ColorPipeline(resolver=resolver)
        assert pipeline.registry is resolver.registry

    def test_pipelines_are_independent(self):
        """Two pipelines share no state."""
        first = ColorPipeline()
        second = ColorPipeline()
        first.index_document("a.css", ":root { --x: #fff; }")
        assert not second.registry.has_variable("--x")


class TestEnsureData:
    """Tests for cached computations."""

    @pytest.mark.asyncio
    async def test_computes_once_per_version(self, pipeline):
        """A second call for the same version is a cache hit."""
        compute = MagicMock(side_effect=lambda: asyncio.sleep(0, result=["data"]))

        first = await pipeline.ensure_data("doc", 1, compute)
        second = await pipeline.ensure_data("doc", 1, compute)

        assert first == ["data"]
        assert second is first
        assert compute.call_count == 1

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_work(self, pipeline):
        """Concurrent callers get the identical result object."""
        calls = 0

        async def compute() -> object:
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.01)
            return object()

        a, b = await asyncio.gather(
            pipeline.ensure_data("doc", 1, compute),
            pipeline.ensure_data("doc", 1, compute),
        )
        assert a is b
        assert calls == 1

    @pytest.mark.asyncio
    async def test_failure_propagates_and_retries(self, pipeline):
        """Errors reach the caller and are not cached."""
        attempts = 0

        async def flaky() -> str:
            nonlocal attempts
            attempts += 1
            if attempts == 1:
                raise ValueError("compute failed")
            return "ok"

        with pytest.raises(ValueError):
            await pipeline.ensure_data("doc", 1, flaky)
        assert await pipeline.ensure_data("doc", 1, flaky) == "ok"

    @pytest.mark.asyncio
    async def test_stale_result_does_not_replace_newer(self, pipeline):
        """A slow older computation cannot clobber a newer cached result."""
        release = asyncio.Event()

        async def slow() -> str:
            await release.wait()
            return "v1"

        async def fast() -> str:
            return "v2"

        old = asyncio.ensure_future(pipeline.ensure_data("doc", 1, slow))
        await asyncio.sleep(0)
        assert await pipeline.ensure_data("doc", 2, fast) == "v2"

        release.set()
        assert await old == "v1"
        assert pipeline.cache.get("doc", 2) == "v2"
        assert pipeline.cache.get("doc", 1) is None

    @pytest.mark.asyncio
    async def test_cached_none_is_a_hit(self, pipeline):
        """A computation that returned None is not repeated."""
        calls = 0

        async def compute() -> None:
            nonlocal calls
            calls += 1

        assert await pipeline.ensure_data("doc", 1, compute) is None
        assert await pipeline.ensure_data("doc", 1, compute) is None
        assert calls == 1

    @pytest.mark.asyncio
    async def test_close_during_compute_leaves_no_entry(self, pipeline):
        """Closing a document while its computation runs keeps it closed."""
        release = asyncio.Event()

        async def compute() -> list[str]:
            await release.wait()
            return ["stale"]

        pending = asyncio.ensure_future(pipeline.ensure_data("doc", 1, compute))
        await asyncio.sleep(0)
        pipeline.close_resource("doc")

        release.set()
        assert await pending == ["stale"]
        assert not pipeline.cache.has("doc", 1)
        assert pipeline.cache.size == 0

    @pytest.mark.asyncio
    async def test_index_change_during_compute_is_not_cached(self, pipeline):
        """Results computed against a replaced index are recomputed."""
        release = asyncio.Event()
        calls = 0

        async def compute() -> list[str]:
            nonlocal calls
            calls += 1
            if calls == 1:
                await release.wait()
                return ["old-index"]
            return ["new-index"]

        pending = asyncio.ensure_future(pipeline.ensure_data("doc", 1, compute))
        await asyncio.sleep(0)
        pipeline.index_document("theme.css", ":root { --brand: #f00; }")

        release.set()
        assert await pending == ["old-index"]
        assert pipeline.cache.size == 0
        assert await pipeline.ensure_data("doc", 1, compute) == ["new-index"]
        assert calls == 2


class TestScheduleRefresh:
    """Tests for timed refresh runners."""

    @pytest.mark.asyncio
    async def test_duration_is_recorded(self, pipeline):
        """Runner durations feed the scheduler's moving average."""

        async def runner() -> None:
            await asyncio.sleep(0.01)

        await pipeline.schedule_refresh("doc", 1, runner, immediate=True)
        average = pipeline.scheduler.get_average_refresh_duration("doc")
        assert average is not None
        assert average >= 5

    @pytest.mark.asyncio
    async def test_duration_recorded_on_failure(self, pipeline):
        """Failed runners still report their duration."""

        async def runner() -> None:
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await pipeline.schedule_refresh("doc", 1, runner, immediate=True)
        assert pipeline.scheduler.get_average_refresh_duration("doc") is not None


class TestDocuments:
    """Tests for detection over document snapshots."""

    def test_collect_colors(self, pipeline):
        """Literals are detected in any document."""
        snapshot = DocumentSnapshot("app.ts", 1, 'const c = "#f00";', "typescript")
        occurrences = pipeline.collect_colors(snapshot)
        assert [occ.original_text for occ in occurrences] == ["#f00"]

    def test_css_document_indexed_before_detection(self, pipeline):
        """Stylesheets contribute declarations used by their own references."""
        text = ":root { --brand: #ff0000; }\n.title { color: var(--brand); }"
        snapshot = DocumentSnapshot("theme.css", 1, text, "css")

        occurrences = pipeline.collect_colors(snapshot)

        assert pipeline.registry.has_variable("--brand")
        assert pipeline.registry.has_class("title")
        assert [occ.kind for occ in occurrences] == [
            OccurrenceKind.LITERAL,
            OccurrenceKind.VARIABLE,
        ]
        assert occurrences[1].canonical_string == "rgb(255, 0, 0)"

    def test_css_indexed_once_per_version(self, pipeline):
        """Re-collecting the same version does not re-scan."""
        snapshot = DocumentSnapshot("theme.css", 1, ":root { --a: #fff; }", "css")

        with patch.object(pipeline.scanner, "scan", wraps=pipeline.scanner.scan) as scan:
            pipeline.collect_colors(snapshot)
            pipeline.collect_colors(snapshot)
            assert scan.call_count == 1

            pipeline.collect_colors(DocumentSnapshot("theme.css", 2, ":root { --a: #000; }", "css"))
            assert scan.call_count == 2

        assert pipeline.registry.get_variable("--a")[0].raw_value == "#000"

    def test_css_detected_by_extension(self, pipeline):
        """Files with stylesheet extensions are indexed regardless of language."""
        snapshot = DocumentSnapshot(
            "vars", 1, ":root { --a: #fff; }", "plaintext", path="styles/vars.scss"
        )
        assert pipeline.is_css_document(snapshot)
        pipeline.collect_colors(snapshot)
        assert pipeline.registry.has_variable("--a")

    def test_non_css_document_not_indexed(self, pipeline):
        """Declarations in other languages are not registered."""
        snapshot = DocumentSnapshot("app.ts", 1, "const s = '--a: #fff;'", "typescript")
        pipeline.collect_colors(snapshot)
        assert not pipeline.registry.has_variable("--a")

    @pytest.mark.asyncio
    async def test_ensure_colors_cached(self, pipeline):
        """Detection runs once per version."""
        snapshot = DocumentSnapshot("app.ts", 1, "#fff", "typescript")

        with patch.object(
            pipeline.detector, "collect", wraps=pipeline.detector.collect
        ) as collect:
            first = await pipeline.ensure_colors(snapshot)
            second = await pipeline.ensure_colors(snapshot)

        assert first is second
        assert collect.call_count == 1


class TestRefreshDocument:
    """Tests for scheduled detection with an apply callback."""

    @pytest.mark.asyncio
    async def test_applies_occurrences(self, pipeline):
        """The callback receives the detected colors."""
        applied = []
        snapshot = DocumentSnapshot("app.ts", 1, "#fff rgb(0, 0, 0)", "typescript")

        await pipeline.refresh_document(snapshot, applied.append)

        assert len(applied) == 1
        assert [occ.original_text for occ in applied[0]] == ["#fff", "rgb(0, 0, 0)"]

    @pytest.mark.asyncio
    async def test_async_apply(self, pipeline):
        """Coroutine callbacks are awaited."""
        applied = []

        async def apply(occurrences) -> None:
            await asyncio.sleep(0)
            applied.append(occurrences)

        await pipeline.refresh_document(DocumentSnapshot("a", 1, "#fff"), apply)
        assert len(applied) == 1

    @pytest.mark.asyncio
    async def test_rapid_edits_apply_latest_only(self, pipeline):
        """Superseded versions never reach the callback."""
        applied_versions = []

        def apply_for(version: int):
            return lambda occurrences: applied_versions.append(version)

        first = pipeline.refresh_document(DocumentSnapshot("a", 1, "#fff"), apply_for(1))
        second = pipeline.refresh_document(DocumentSnapshot("a", 2, "#000"), apply_for(2))
        await asyncio.gather(first, second)

        assert applied_versions == [2]

    @pytest.mark.asyncio
    async def test_stale_result_skipped(self, pipeline):
        """A result for an older version than the latest request is dropped."""
        applied_versions = []

        await pipeline.refresh_document(
            DocumentSnapshot("a", 2, "#000"), lambda occ: applied_versions.append(2)
        )
        await pipeline.refresh_document(
            DocumentSnapshot("a", 1, "#fff"), lambda occ: applied_versions.append(1)
        )

        assert applied_versions == [2]


class TestIndexLifecycle:
    """Tests for index maintenance and teardown."""

    @pytest.mark.asyncio
    async def test_index_document_invalidates_colors(self, pipeline):
        """Changing declarations drops cached detection results."""
        snapshot = DocumentSnapshot("app.ts", 1, "var(--brand)", "typescript")
        assert await pipeline.ensure_colors(snapshot) == []

        pipeline.index_document("theme.css", ":root { --brand: #f00; }")

        assert pipeline.cache.size == 0
        (occ,) = await pipeline.ensure_colors(snapshot)
        assert occ.variable_name == "--brand"

    def test_index_document_replaces_origin(self, pipeline):
        """Re-indexing a file replaces its earlier declarations."""
        pipeline.index_document("theme.css", ":root { --old: #f00; }")
        result = pipeline.index_document("theme.css", ":root { --new: #0f0; }")

        assert [decl.name for decl in result.variables] == ["--new"]
        assert pipeline.registry.variable_names() == ["--new"]

    def test_remove_origin(self, pipeline):
        """Removing a source drops only its declarations."""
        pipeline.index_document("a.css", ":root { --a: #f00; }")
        pipeline.index_document("b.css", ":root { --b: #0f0; }")

        assert pipeline.remove_origin("a.css") == 1
        assert pipeline.registry.variable_names() == ["--b"]

    def test_reindex(self, pipeline):
        """reindex() rebuilds the index from scratch."""
        pipeline.index_document("stale.css", ":root { --stale: #000; }")

        count = pipeline.reindex(
            [
                ("a.css", ":root { --a: #f00; --shared: #fff; }"),
                ("b.css", ".dark { --shared: #000; }"),
            ]
        )

        assert count == 2
        assert not pipeline.registry.has_variable("--stale")
        assert len(pipeline.registry.get_variable("--shared")) == 2

    def test_should_process(self, pipeline):
        """Languages are filtered by configuration."""
        assert pipeline.should_process("css")
        assert pipeline.should_process("typescriptreact")
        assert not pipeline.should_process("cobol")

    def test_should_process_wildcard(self):
        """A * entry enables every language."""
        pipeline = ColorPipeline(PipelineConfig(languages=["*"]))
        assert pipeline.should_process("cobol")

    @pytest.mark.asyncio
    async def test_close_resource(self, pipeline):
        """Closing a document drops its cached and scheduled state."""
        snapshot = DocumentSnapshot("app.ts", 1, "#fff", "typescript")
        await pipeline.ensure_colors(snapshot)
        pipeline.scheduler.record_refresh_duration("app.ts", 10)

        pipeline.close_resource("app.ts")

        assert pipeline.cache.get("app.ts", 1) is None
        assert pipeline.scheduler.get_average_refresh_duration("app.ts") is None

    @pytest.mark.asyncio
    async def test_dispose_cancels_pending_refresh(self, pipeline):
        """dispose() resolves pending refreshes without applying them."""
        applied = []
        completion = pipeline.refresh_document(DocumentSnapshot("a", 1, "#fff"), applied.append)

        pipeline.dispose()

        assert completion.done()
        await asyncio.sleep(0.02)
        assert applied == []
        assert pipeline.get_stats()["cache"]["entries"] == 0

    def test_circular_reference_callback(self):
        """Cycles found while detecting reach the pipeline's callback."""
        signals = []
        pipeline = ColorPipeline(on_circular_reference=signals.append)
        pipeline.index_document("a.css", ":root { --a: var(--b); --b: var(--a); }")
        signals.clear()

        pipeline.collect_colors(DocumentSnapshot("app.ts", 1, "var(--a)", "typescript"))

        assert len(signals) == 1
        assert signals[0].name == "--a"

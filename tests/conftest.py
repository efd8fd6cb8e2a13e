"""
Shared fixtures for the color indexer test suite.

Provides test fixtures for:
- Declaration factories
- Registry, resolver and pipeline instances
- Sample stylesheet content
- Logging and environment isolation
"""

import logging
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from color_indexer.config import PipelineConfig, SchedulerConfig
from color_indexer.config.config_loader import ENV_OVERRIDES
from color_indexer.indexer_logging import ROOT_LOGGER_NAME
from color_indexer.pipeline import ColorPipeline
from color_indexer.registry import (
    ContextKind,
    Declaration,
    DeclarationContext,
    DeclarationRegistry,
    ThemeHint,
    VariableResolver,
)

SAMPLE_CSS = """:root {
  --primary: #3b82f6;
  --accent: var(--primary);
  --muted: 210 40% 96%;
}

.dark {
  --primary: #1e40af;
}

.brand { color: var(--accent); }
"""


# ---------------------------------------------------------------------------
# Isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def reset_logging() -> Iterator[None]:
    """Undo any setup_logging() call so handlers never outlive a test."""
    yield
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep COLOR_INDEXER_* variables from the host out of config tests."""
    for env_var in ENV_OVERRIDES:
        monkeypatch.delenv(env_var, raising=False)


# ---------------------------------------------------------------------------
# Declarations and registry
# ---------------------------------------------------------------------------


@pytest.fixture
def make_declaration() -> Callable[..., Declaration]:
    """Factory for custom property declarations."""

    def _make(
        name: str,
        value: str,
        origin: str = "theme.css",
        specificity: int = 1,
        theme_hint: ThemeHint | None = None,
        selector: str = ":root",
    ) -> Declaration:
        kind = ContextKind.ROOT if specificity == 1 else ContextKind.CLASS
        return Declaration(
            name=name,
            raw_value=value,
            origin_id=origin,
            selector=selector,
            context=DeclarationContext(
                kind=kind, specificity=specificity, theme_hint=theme_hint
            ),
        )

    return _make


@pytest.fixture
def registry() -> DeclarationRegistry:
    """Empty declaration registry."""
    return DeclarationRegistry()


@pytest.fixture
def resolver(registry: DeclarationRegistry) -> VariableResolver:
    """Resolver over the registry fixture."""
    return VariableResolver(registry)


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


@pytest.fixture
def fast_config() -> PipelineConfig:
    """Configuration with short debounce delays for scheduling tests."""
    return PipelineConfig(
        scheduler=SchedulerConfig(
            debounce_ms=5, heavy_debounce_ms=20, heavy_threshold_ms=100
        )
    )


@pytest.fixture
def pipeline(fast_config: PipelineConfig) -> Iterator[ColorPipeline]:
    """Pipeline with fast scheduling, disposed after the test."""
    instance = ColorPipeline(fast_config)
    yield instance
    instance.dispose()


@pytest.fixture
def sample_css() -> str:
    """Stylesheet text with root, dark and class declarations."""
    return SAMPLE_CSS


@pytest.fixture
def sample_css_file(tmp_path: Path) -> Path:
    """Stylesheet on disk with root, dark and class declarations."""
    path = tmp_path / "theme.css"
    path.write_text(SAMPLE_CSS)
    return path

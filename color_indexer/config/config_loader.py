"""Configuration loading with file and environment support."""

import json
import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ..errors import ConfigurationError
from ..indexer_logging import get_logger
from .models import PipelineConfig

logger = get_logger()

# Default configuration file name
CONFIG_FILENAME = "color-indexer.config.json"

# Environment variable -> (section, key)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "COLOR_INDEXER_DEBOUNCE_MS": ("scheduler", "debounce_ms"),
    "COLOR_INDEXER_HEAVY_DEBOUNCE_MS": ("scheduler", "heavy_debounce_ms"),
    "COLOR_INDEXER_HEAVY_THRESHOLD_MS": ("scheduler", "heavy_threshold_ms"),
    "COLOR_INDEXER_LOG_LEVEL": ("logging", "level"),
    "COLOR_INDEXER_LOG_FORMAT": ("logging", "format"),
}


def _merge(base: dict[str, Any], updates: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge updates into a copy of base."""
    merged = dict(base)
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigLoader:
    """Configuration loader.

    Precedence (highest to lowest):
    1. Explicit overrides
    2. Environment variables
    3. Config file (color-indexer.config.json)
    4. Defaults
    """

    def __init__(self, config_path: Path | None = None):
        self.config_path = self._find_config(config_path)

    def _find_config(self, config_path: Path | None) -> Path | None:
        if config_path is None:
            candidate = Path.cwd() / CONFIG_FILENAME
            return candidate if candidate.exists() else None

        path = Path(config_path)
        if path.is_dir():
            candidate = path / CONFIG_FILENAME
            return candidate if candidate.exists() else None
        return path

    def load(self, **overrides: Any) -> PipelineConfig:
        """Load configuration from all sources.

        Raises:
            ConfigurationError: If the file is unreadable or values are invalid.
        """
        config_dict: dict[str, Any] = {}

        if self.config_path is not None:
            config_dict = _merge(config_dict, self._load_file(self.config_path))
            logger.debug(f"Loaded configuration from {self.config_path}")

        env_dict: dict[str, Any] = {}
        for env_var, (section, key) in ENV_OVERRIDES.items():
            value = os.environ.get(env_var)
            if value is not None:
                env_dict.setdefault(section, {})[key] = value
        if env_dict:
            logger.debug(f"Applied {sum(len(v) for v in env_dict.values())} environment variables")
            config_dict = _merge(config_dict, env_dict)

        config_dict = _merge(config_dict, overrides)

        try:
            return PipelineConfig(**config_dict)
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid configuration: {e}",
                config_file=str(self.config_path) if self.config_path else None,
            ) from e

    def _load_file(self, path: Path) -> dict[str, Any]:
        try:
            with open(path) as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise ConfigurationError(
                f"Configuration file not found: {path}", config_file=str(path)
            ) from e
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Invalid JSON in configuration file: {e}", config_file=str(path)
            ) from e

        if not isinstance(data, dict):
            raise ConfigurationError(
                "Configuration file must contain a JSON object", config_file=str(path)
            )
        return data


def load_config(config_path: Path | None = None, **overrides: Any) -> PipelineConfig:
    """Load configuration (convenience wrapper around ConfigLoader)."""
    return ConfigLoader(config_path).load(**overrides)

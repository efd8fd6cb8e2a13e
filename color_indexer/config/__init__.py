"""Configuration package.

Configuration Precedence (highest to lowest):
1. Explicit overrides
2. Environment variables
3. Config file (color-indexer.config.json)
4. Defaults
"""

from .config_loader import CONFIG_FILENAME, ConfigLoader, load_config
from .models import DEFAULT_LANGUAGES, LoggingSettings, PipelineConfig, SchedulerConfig

__all__ = [
    "CONFIG_FILENAME",
    "ConfigLoader",
    "DEFAULT_LANGUAGES",
    "LoggingSettings",
    "PipelineConfig",
    "SchedulerConfig",
    "load_config",
]

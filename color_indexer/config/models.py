"""Configuration models for the color pipeline."""

from typing import Any

from pydantic import BaseModel, Field, validator

DEFAULT_LANGUAGES: list[str] = [
    "css",
    "scss",
    "sass",
    "less",
    "stylus",
    "postcss",
    "html",
    "xml",
    "svg",
    "javascript",
    "javascriptreact",
    "typescript",
    "typescriptreact",
    "vue",
    "svelte",
    "astro",
    "json",
    "jsonc",
    "yaml",
    "toml",
    "markdown",
    "mdx",
    "plaintext",
    "python",
    "ruby",
    "php",
    "perl",
    "go",
    "rust",
    "java",
    "kotlin",
    "swift",
    "csharp",
    "cpp",
    "c",
    "objective-c",
    "dart",
    "lua",
    "shellscript",
    "powershell",
    "sql",
    "graphql",
]


class SchedulerConfig(BaseModel):
    """Refresh scheduling behavior."""

    debounce_ms: float = Field(default=50.0, ge=0)
    heavy_debounce_ms: float = Field(default=200.0, ge=0)
    heavy_threshold_ms: float = Field(default=120.0, ge=0)
    duration_smoothing: float = Field(default=0.3, gt=0, le=1)


class LoggingSettings(BaseModel):
    """Logging output settings."""

    level: str = Field(default="INFO")
    format: str = Field(default="text")

    @validator("level")
    def validate_level(cls, v: Any) -> str:
        level = str(v).upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @validator("format")
    def validate_format(cls, v: Any) -> str:
        if v not in ("text", "json"):
            raise ValueError("Log format must be 'text' or 'json'")
        return v


class PipelineConfig(BaseModel):
    """Top-level configuration for the color pipeline."""

    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    # Languages whose documents are scanned for colors; "*" matches all
    languages: list[str] = Field(default_factory=lambda: list(DEFAULT_LANGUAGES))

    # Documents indexed for custom property declarations before detection
    css_languages: list[str] = Field(
        default_factory=lambda: ["css", "scss", "sass", "less", "stylus", "postcss"]
    )
    css_extensions: list[str] = Field(
        default_factory=lambda: [".css", ".scss", ".sass", ".less", ".styl", ".pcss"]
    )

    @validator("languages", "css_languages")
    def validate_languages(cls, v: Any) -> list[str]:
        if not isinstance(v, list):
            raise ValueError("Languages must be a list")
        for language in v:
            if not isinstance(language, str) or not language.strip():
                raise ValueError("All languages must be non-empty strings")
        return [language.strip() for language in v]

    @validator("css_extensions")
    def validate_extensions(cls, v: Any) -> list[str]:
        if not isinstance(v, list):
            raise ValueError("Extensions must be a list")
        return [ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in v]

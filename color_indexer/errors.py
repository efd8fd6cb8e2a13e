"""Structured error types for the color indexer.

Value-level failures (malformed colors, circular references) stay local and
are reported as ``None`` results or log signals. Only genuine computation
failures cross the cache/scheduler boundary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(Enum):
    """Categories of indexer errors."""

    INVALID_FORMAT = "invalid_format"  # Unparseable color text
    CIRCULAR_REFERENCE = "circular_reference"  # var() chain loops back
    COMPUTATION = "computation"  # Runner or compute function failed
    CONFIGURATION = "configuration"  # Bad config file or values


@dataclass
class ColorIndexerError(Exception):
    """Base class for structured errors.

    Attributes:
        category: Error category for grouping.
        message: Human-readable error message.
        details: Optional additional details dict.
    """

    category: ErrorCategory
    message: str
    details: dict[str, Any] | None = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Initialize the exception with the message."""
        super().__init__(self.message)

    def __str__(self) -> str:
        """Return the message followed by any details."""
        if not self.details:
            return self.message
        extra = ", ".join(f"{key}={value}" for key, value in self.details.items())
        return f"{self.message} ({extra})"


class InvalidColorFormat(ColorIndexerError):
    """Text is not a recognized color notation.

    Only raised by strict helpers such as ``require_color``; the codec
    itself returns ``None``.
    """

    def __init__(self, raw: str):
        super().__init__(
            category=ErrorCategory.INVALID_FORMAT,
            message=f"Not a recognized color: {raw!r}",
            details={"value": raw},
        )


class CircularReferenceError(ColorIndexerError):
    """A var() chain refers back to a name already being resolved.

    Never raised by the resolver; instances are handed to the
    ``on_circular_reference`` callback.
    """

    def __init__(self, name: str, chain: tuple[str, ...] = ()):
        self.name = name
        self.chain = chain
        super().__init__(
            category=ErrorCategory.CIRCULAR_REFERENCE,
            message=f"Circular CSS variable reference detected: {name}",
            details={"chain": " -> ".join([*chain, name])},
        )


class ComputationFailure(ColorIndexerError):
    """Summary of a failed cache computation or refresh runner."""

    def __init__(self, key: str, version: int, cause: BaseException):
        self.cause = cause
        super().__init__(
            category=ErrorCategory.COMPUTATION,
            message=f"Computation for {key} failed: {cause}",
            details={"version": version, "cause": type(cause).__name__},
        )


class ConfigurationError(ColorIndexerError):
    """Error in configuration file or settings."""

    def __init__(self, message: str, config_file: str | None = None):
        super().__init__(
            category=ErrorCategory.CONFIGURATION,
            message=message,
            details={"config_file": config_file} if config_file else None,
        )

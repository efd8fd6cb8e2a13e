"""Color value models.

Colors are stored as four floats in [0, 1] so that every notation
(hex, rgb, hsl, compact HSL) converts through the same representation.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any


class ColorFormat(Enum):
    """Textual notations a color can be written in."""

    HEX = "hex"  # #rgb / #rrggbb
    HEX_ALPHA = "hexAlpha"  # #rgba / #rrggbbaa
    RGB = "rgb"
    RGBA = "rgba"
    HSL = "hsl"
    HSLA = "hsla"
    TAILWIND = "tailwind"  # Compact "H S% L% / A" used by Tailwind themes


# Fallback order used after the author's original notation
FORMAT_FALLBACK_ORDER: tuple[ColorFormat, ...] = (
    ColorFormat.RGBA,
    ColorFormat.HSLA,
    ColorFormat.HEX_ALPHA,
    ColorFormat.RGB,
    ColorFormat.HSL,
    ColorFormat.HEX,
    ColorFormat.TAILWIND,
)


def clamp(value: float, low: float, high: float) -> float:
    """Clamp value into [low, high]."""
    return min(max(value, low), high)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves rounding up."""
    return math.floor(value + 0.5)


def format_decimal(value: float, places: int = 2) -> str:
    """Round half-up to a number of decimals and drop trailing zeros.

    Examples: 0.5 -> "0.5", 1.0 -> "1", 212.3077 -> "212.31".
    """
    scale = 10**places
    rounded = math.floor(value * scale + 0.5) / scale
    text = f"{rounded:.{places}f}".rstrip("0").rstrip(".")
    return text or "0"


@dataclass(frozen=True)
class ColorValue:
    """An RGBA color with channels in [0, 1]."""

    red: float
    green: float
    blue: float
    alpha: float = 1.0

    def __post_init__(self) -> None:
        # Frozen dataclass: clamp through object.__setattr__
        for channel in ("red", "green", "blue", "alpha"):
            object.__setattr__(self, channel, clamp(float(getattr(self, channel)), 0.0, 1.0))

    @classmethod
    def from_rgb255(
        cls, red: float, green: float, blue: float, alpha: float = 1.0
    ) -> "ColorValue":
        """Create from 0-255 channel values."""
        return cls(red / 255, green / 255, blue / 255, alpha)

    def to_rgb255(self) -> tuple[int, int, int]:
        """Channel values as rounded 0-255 integers."""
        return (
            round_half_up(self.red * 255),
            round_half_up(self.green * 255),
            round_half_up(self.blue * 255),
        )

    @property
    def is_opaque(self) -> bool:
        """Check if alpha is exactly 1."""
        return self.alpha >= 1.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "red": self.red,
            "green": self.green,
            "blue": self.blue,
            "alpha": self.alpha,
        }


@dataclass(frozen=True)
class ParsedColor:
    """Result of parsing a color literal.

    ``format_priority`` lists every ColorFormat exactly once, starting with
    the notation the color was written in.
    """

    color: ColorValue
    canonical_string: str
    format_priority: tuple[ColorFormat, ...]

    @property
    def original_format(self) -> ColorFormat:
        """The notation the color was written in."""
        return self.format_priority[0]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "color": self.color.to_dict(),
            "canonical_string": self.canonical_string,
            "format_priority": [fmt.value for fmt in self.format_priority],
        }

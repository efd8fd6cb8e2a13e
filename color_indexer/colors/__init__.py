"""Color codec: parse and format color notations.

This package provides:
- models: ColorValue, ColorFormat and ParsedColor
- parser: parse_color and get_format_priority
- formatter: format_by_format and helpers for each notation
"""

from .formatter import (
    format_all,
    format_by_format,
    format_preferred,
    rgb_to_hsl,
    to_hex,
    to_hsl,
    to_rgba,
    to_tailwind,
)
from .models import FORMAT_FALLBACK_ORDER, ColorFormat, ColorValue, ParsedColor
from .parser import get_format_priority, hsl_to_rgb, parse_color, require_color

__all__ = [
    "ColorFormat",
    "ColorValue",
    "ParsedColor",
    "FORMAT_FALLBACK_ORDER",
    "parse_color",
    "require_color",
    "get_format_priority",
    "hsl_to_rgb",
    "format_by_format",
    "format_preferred",
    "format_all",
    "rgb_to_hsl",
    "to_hex",
    "to_rgba",
    "to_hsl",
    "to_tailwind",
]

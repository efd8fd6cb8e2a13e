"""Color parser for hex, rgb(a), hsl(a) and compact HSL notations.

Parsing never raises: anything that is not a recognized color yields
``None`` so one malformed declaration cannot abort a whole scan.
"""

import math
import re

from ..errors import InvalidColorFormat
from .models import (
    FORMAT_FALLBACK_ORDER,
    ColorFormat,
    ColorValue,
    ParsedColor,
    clamp,
    format_decimal,
    round_half_up,
)

HEX_PATTERN = re.compile(r"^#([0-9a-f]{3,4}|[0-9a-f]{6}|[0-9a-f]{8})$", re.IGNORECASE)
RGB_FUNCTION_PATTERN = re.compile(r"^rgba?\((.*)\)$", re.IGNORECASE | re.DOTALL)
HSL_FUNCTION_PATTERN = re.compile(r"^hsla?\((.*)\)$", re.IGNORECASE | re.DOTALL)

# Alpha accepted by the compact notation: fraction or percentage
_COMPACT_ALPHA = r"(?:0?\.\d+|[01](?:\.\d+)?|\d+(?:\.\d+)?%)"
_NUMBER = r"\d+(?:\.\d+)?"
TAILWIND_HSL_PATTERN = re.compile(
    rf"^({_NUMBER})\s+({_NUMBER})%\s+({_NUMBER})%(?:\s*/\s*({_COMPACT_ALPHA}))?$"
)
_NUMERIC_PATTERN = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:e[+-]?\d+)?$", re.IGNORECASE)


def _to_number(text: str) -> float | None:
    """Parse a plain CSS number, rejecting NaN/inf and trailing junk."""
    if not _NUMERIC_PATTERN.match(text):
        return None
    value = float(text)
    return value if math.isfinite(value) else None


def _split_arguments(body: str) -> list[str]:
    """Split function arguments on commas, slashes and whitespace."""
    return [part for part in re.split(r"[\s,/]+", body.strip()) if part]


def _parse_rgb_channel(text: str) -> int | None:
    if text.endswith("%"):
        percent = _to_number(text[:-1])
        if percent is None:
            return None
        return round_half_up(clamp(percent, 0, 100) / 100 * 255)
    numeric = _to_number(text)
    if numeric is None:
        return None
    return int(clamp(round_half_up(numeric), 0, 255))


def _parse_alpha(text: str | None) -> float | None:
    """Parse an alpha channel; absent alpha means fully opaque."""
    if text is None or not text.strip():
        return 1.0
    text = text.strip()
    if text.endswith("%"):
        percent = _to_number(text[:-1])
        return None if percent is None else clamp(percent, 0, 100) / 100
    numeric = _to_number(text)
    return None if numeric is None else clamp(numeric, 0, 1)


def _parse_percentage(text: str) -> float | None:
    return _to_number(text[:-1] if text.endswith("%") else text)


def _parse_hue(text: str) -> float | None:
    lowered = text.lower()
    if lowered.endswith("deg"):
        lowered = lowered[:-3]
    return _to_number(lowered)


def hsl_to_rgb(hue: float, saturation: float, lightness: float) -> tuple[int, int, int]:
    """Convert HSL to 0-255 RGB.

    Args:
        hue: Hue in degrees, clamped to [0, 360].
        saturation: Saturation percentage, clamped to [0, 100].
        lightness: Lightness percentage, clamped to [0, 100].

    Returns:
        Tuple of rounded red, green, blue values.
    """
    h = clamp(hue, 0, 360) / 360
    s = clamp(saturation, 0, 100) / 100
    lum = clamp(lightness, 0, 100) / 100

    if s == 0:
        gray = round_half_up(lum * 255)
        return gray, gray, gray

    def hue_to_channel(p: float, q: float, t: float) -> float:
        if t < 0:
            t += 1
        if t > 1:
            t -= 1
        if t < 1 / 6:
            return p + (q - p) * 6 * t
        if t < 1 / 2:
            return q
        if t < 2 / 3:
            return p + (q - p) * (2 / 3 - t) * 6
        return p

    q = lum * (1 + s) if lum < 0.5 else lum + s - lum * s
    p = 2 * lum - q

    return (
        round_half_up(hue_to_channel(p, q, h + 1 / 3) * 255),
        round_half_up(hue_to_channel(p, q, h) * 255),
        round_half_up(hue_to_channel(p, q, h - 1 / 3) * 255),
    )


def canonical_string(color: ColorValue) -> str:
    """Render the canonical rgb()/rgba() form used for comparisons."""
    r, g, b = color.to_rgb255()
    alpha = format_decimal(color.alpha)
    if alpha != "1":
        return f"rgba({r}, {g}, {b}, {alpha})"
    return f"rgb({r}, {g}, {b})"


def get_format_priority(original: ColorFormat) -> tuple[ColorFormat, ...]:
    """Order formats for re-serialization, the original notation first.

    Args:
        original: The notation the color was written in.

    Returns:
        Tuple containing every ColorFormat exactly once.
    """
    return (original, *(fmt for fmt in FORMAT_FALLBACK_ORDER if fmt is not original))


def _build(color: ColorValue, original: ColorFormat) -> ParsedColor:
    return ParsedColor(
        color=color,
        canonical_string=canonical_string(color),
        format_priority=get_format_priority(original),
    )


def _parse_hex(text: str) -> ParsedColor:
    digits = text[1:]
    has_alpha = len(digits) in (4, 8)
    if len(digits) in (3, 4):
        digits = "".join(ch * 2 for ch in digits)

    r, g, b = (int(digits[i : i + 2], 16) for i in (0, 2, 4))
    alpha = int(digits[6:8], 16) / 255 if has_alpha else 1.0

    color = ColorValue.from_rgb255(r, g, b, alpha)
    return _build(color, ColorFormat.HEX_ALPHA if has_alpha else ColorFormat.HEX)


def _parse_rgb_function(text: str) -> ParsedColor | None:
    match = RGB_FUNCTION_PATTERN.match(text)
    if not match:
        return None

    parts = _split_arguments(match.group(1))
    if len(parts) not in (3, 4):
        return None

    channels = [_parse_rgb_channel(part) for part in parts[:3]]
    alpha = _parse_alpha(parts[3] if len(parts) == 4 else None)
    if any(channel is None for channel in channels) or alpha is None:
        return None

    has_alpha = text[:4].lower() == "rgba" or len(parts) == 4 or "/" in text
    color = ColorValue.from_rgb255(*channels, alpha)
    return _build(color, ColorFormat.RGBA if has_alpha else ColorFormat.RGB)


def _parse_hsl_function(text: str) -> ParsedColor | None:
    match = HSL_FUNCTION_PATTERN.match(text)
    if not match:
        return None

    parts = _split_arguments(match.group(1))
    if len(parts) not in (3, 4):
        return None

    hue = _parse_hue(parts[0])
    saturation = _parse_percentage(parts[1])
    lightness = _parse_percentage(parts[2])
    alpha = _parse_alpha(parts[3] if len(parts) == 4 else None)
    if hue is None or saturation is None or lightness is None or alpha is None:
        return None

    has_alpha = text[:4].lower() == "hsla" or len(parts) == 4 or "/" in text
    color = ColorValue.from_rgb255(*hsl_to_rgb(hue, saturation, lightness), alpha)
    return _build(color, ColorFormat.HSLA if has_alpha else ColorFormat.HSL)


def _parse_tailwind_hsl(match: re.Match[str]) -> ParsedColor | None:
    alpha = _parse_alpha(match.group(4))
    if alpha is None:
        return None
    hue, saturation, lightness = (float(match.group(i)) for i in (1, 2, 3))
    color = ColorValue.from_rgb255(*hsl_to_rgb(hue, saturation, lightness), alpha)
    return _build(color, ColorFormat.TAILWIND)


def parse_color(raw: str) -> ParsedColor | None:
    """Parse a color string into a ParsedColor.

    Supports: #RGB, #RGBA, #RRGGBB, #RRGGBBAA, rgb(), rgba(), hsl(), hsla()
    and the compact "H S% L% / A" notation.

    Args:
        raw: The raw color string to parse.

    Returns:
        ParsedColor, or None if the text is not a recognized color.
    """
    text = raw.strip()
    if not text:
        return None

    if HEX_PATTERN.match(text):
        return _parse_hex(text)

    lowered = text[:4].lower()
    if lowered.startswith("rgb"):
        return _parse_rgb_function(text)
    if lowered.startswith("hsl"):
        return _parse_hsl_function(text)

    tailwind_match = TAILWIND_HSL_PATTERN.match(text)
    if tailwind_match:
        return _parse_tailwind_hsl(tailwind_match)

    return None


def require_color(raw: str) -> ParsedColor:
    """Parse a color, raising InvalidColorFormat when it is not one."""
    parsed = parse_color(raw)
    if parsed is None:
        raise InvalidColorFormat(raw)
    return parsed

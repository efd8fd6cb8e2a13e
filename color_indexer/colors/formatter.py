"""Color formatter for hex, rgb(a), hsl(a) and compact HSL notations."""

from collections.abc import Iterable

from .models import ColorFormat, ColorValue, ParsedColor, format_decimal, round_half_up


def rgb_to_hsl(red: float, green: float, blue: float) -> tuple[float, float, float]:
    """Convert 0-255 RGB values to HSL.

    Returns:
        Hue in [0, 360), saturation and lightness in [0, 100].
    """
    r, g, b = red / 255, green / 255, blue / 255
    high = max(r, g, b)
    low = min(r, g, b)
    lightness = (high + low) / 2
    hue = saturation = 0.0

    if high != low:
        delta = high - low
        saturation = (
            delta / (2 - high - low) if lightness > 0.5 else delta / (high + low)
        )
        if high == r:
            hue = ((g - b) / delta + (6 if g < b else 0)) / 6
        elif high == g:
            hue = ((b - r) / delta + 2) / 6
        else:
            hue = ((r - g) / delta + 4) / 6

    return hue * 360, saturation * 100, lightness * 100


def to_hex(color: ColorValue, include_alpha: bool = False) -> str:
    """Render #rrggbb, or #rrggbbaa when include_alpha is set."""
    r, g, b = color.to_rgb255()
    base = f"#{r:02x}{g:02x}{b:02x}"
    if not include_alpha:
        return base
    return f"{base}{round_half_up(color.alpha * 255):02x}"


def to_rgba(color: ColorValue, force_alpha: bool = False) -> str:
    """Render rgb(r, g, b), or rgba(r, g, b, a) for translucent colors."""
    r, g, b = color.to_rgb255()
    alpha = format_decimal(color.alpha)
    if not force_alpha and alpha == "1":
        return f"rgb({r}, {g}, {b})"
    return f"rgba({r}, {g}, {b}, {alpha})"


def _hsl_components(color: ColorValue) -> str:
    hue, saturation, lightness = rgb_to_hsl(
        color.red * 255, color.green * 255, color.blue * 255
    )
    return (
        f"{format_decimal(hue)} {format_decimal(saturation)}% "
        f"{format_decimal(lightness)}%"
    )


def to_hsl(color: ColorValue, force_alpha: bool = False) -> str:
    """Render hsl(h s% l%), or hsla(h s% l% / a) for translucent colors."""
    base = _hsl_components(color)
    if not force_alpha and color.is_opaque:
        return f"hsl({base})"
    return f"hsla({base} / {format_decimal(color.alpha)})"


def to_tailwind(color: ColorValue) -> str:
    """Render the compact "h s% l%" notation, with " / a" when translucent."""
    base = _hsl_components(color)
    if color.is_opaque:
        return base
    return f"{base} / {format_decimal(color.alpha)}"


def format_by_format(color: ColorValue, fmt: ColorFormat) -> str | None:
    """Format a color in a specific notation.

    Notations without an alpha channel return None for translucent colors
    so callers fall back to the next format in their priority list.

    Args:
        color: The color to format.
        fmt: Target notation.

    Returns:
        The formatted string, or None if the notation cannot represent it.
    """
    if fmt is ColorFormat.HEX:
        return to_hex(color) if color.is_opaque else None
    if fmt is ColorFormat.HEX_ALPHA:
        return to_hex(color, include_alpha=True)
    if fmt is ColorFormat.RGB:
        return to_rgba(color) if color.is_opaque else None
    if fmt is ColorFormat.RGBA:
        return to_rgba(color, force_alpha=True)
    if fmt is ColorFormat.HSL:
        return to_hsl(color) if color.is_opaque else None
    if fmt is ColorFormat.HSLA:
        return to_hsl(color, force_alpha=True)
    if fmt is ColorFormat.TAILWIND:
        return to_tailwind(color)
    return None


def format_preferred(
    color: ColorValue | ParsedColor, priority: Iterable[ColorFormat] | None = None
) -> str:
    """Format a color in the first notation of a priority list that fits.

    Args:
        color: A color, or a parsed color whose own priority is used.
        priority: Explicit priority; defaults to the parsed color's priority.

    Returns:
        The formatted string. Falls back to rgba() which fits every color.
    """
    if isinstance(color, ParsedColor):
        value = color.color
        order: Iterable[ColorFormat] = priority or color.format_priority
    else:
        value = color
        order = priority or (ColorFormat.RGBA,)

    for fmt in order:
        formatted = format_by_format(value, fmt)
        if formatted is not None:
            return formatted
    return to_rgba(value, force_alpha=True)


def format_all(parsed: ParsedColor) -> dict[ColorFormat, str]:
    """Every notation able to represent the color, in priority order."""
    result: dict[ColorFormat, str] = {}
    for fmt in parsed.format_priority:
        formatted = format_by_format(parsed.color, fmt)
        if formatted is not None:
            result[fmt] = formatted
    return result

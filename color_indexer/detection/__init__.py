"""Color occurrence detection."""

from .detector import ColorDetector, ColorOccurrence, OccurrenceKind

__all__ = ["ColorDetector", "ColorOccurrence", "OccurrenceKind"]

"""Color occurrence detection in arbitrary document text.

Detects color literals (hex, rgb/hsl functions, compact HSL), custom
property references (``var(--x)``, ``hsl(var(--x))``), Tailwind utility
classes backed by custom properties, and class names whose CSS sets a color.
"""

import bisect
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..colors import ColorFormat, ColorValue, ParsedColor, parse_color
from ..indexer_logging import LogCategory, get_category_logger
from ..registry import VariableResolver

logger = get_category_logger(LogCategory.PIPELINE)

HEX_COLOR_PATTERN = re.compile(r"#(?:[0-9a-fA-F]{3,4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})\b")
FUNCTION_COLOR_PATTERN = re.compile(r"\b(?:rgba?|hsla?)\(([^{\r\n]*?)\)", re.IGNORECASE)
TAILWIND_HSL_PATTERN = re.compile(
    r"(?<![\w#(])(\d+(?:\.\d+)?\s+\d+(?:\.\d+)?%\s+\d+(?:\.\d+)?%"
    r"(?:\s*/\s*(?:0?\.\d+|[01](?:\.\d+)?|\d+(?:\.\d+)?%))?)"
)
CSS_VAR_PATTERN = re.compile(r"var\(\s*(--[\w-]+)\s*\)")
CSS_VAR_IN_FUNCTION_PATTERN = re.compile(
    r"\b(hsla?|rgba?)\(\s*var\(\s*(--[\w-]+)\s*\)\s*\)", re.IGNORECASE
)
TAILWIND_CLASS_PATTERN = re.compile(
    r"\b(bg|text|border|ring|shadow|from|via|to|outline|decoration|divide|accent|caret)"
    r"-(\w+(?:-\w+)?)\b"
)
CLASS_ATTRIBUTE_PATTERN = re.compile(r"\b(?:class|className)\s*=\s*[\"']([^\"']+)[\"']")


class OccurrenceKind(Enum):
    """What produced a detected color."""

    LITERAL = "literal"  # #f00, rgb(...), hsl(...), "200 50% 40%"
    VARIABLE = "variable"  # var(--x) or hsl(var(--x))
    TAILWIND_CLASS = "tailwind_class"  # bg-primary -> --primary
    CSS_CLASS = "css_class"  # class="brand" with .brand { color: ... }


@dataclass(frozen=True)
class ColorOccurrence:
    """A color found in a document, with its exact text span."""

    start: int  # Offset of the first character
    end: int  # Offset one past the last character
    line: int  # 0-indexed
    character: int  # 0-indexed column of start
    original_text: str
    parsed: ParsedColor
    kind: OccurrenceKind = OccurrenceKind.LITERAL
    variable_name: str | None = None
    class_name: str | None = None
    wrapped_in_function: bool = False

    @property
    def color(self) -> ColorValue:
        return self.parsed.color

    @property
    def canonical_string(self) -> str:
        return self.parsed.canonical_string

    @property
    def format_priority(self) -> tuple[ColorFormat, ...]:
        return self.parsed.format_priority

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "start": self.start,
            "end": self.end,
            "line": self.line,
            "character": self.character,
            "original_text": self.original_text,
            "canonical": self.canonical_string,
            "color": self.color.to_dict(),
            "kind": self.kind.value,
            "variable_name": self.variable_name,
            "class_name": self.class_name,
            "wrapped_in_function": self.wrapped_in_function,
        }


class _Collector:
    """Accumulates occurrences for one text, rejecting overlapping spans."""

    def __init__(self, text: str):
        self.text = text
        self.line_starts = [0] + [m.end() for m in re.finditer(r"\n", text)]
        # Accepted spans, sorted and pairwise disjoint
        self.spans: list[tuple[int, int]] = []
        self.results: list[ColorOccurrence] = []

    def overlaps(self, start: int, end: int) -> bool:
        index = bisect.bisect_left(self.spans, (start, end))
        if index > 0 and self.spans[index - 1][1] > start:
            return True
        return index < len(self.spans) and self.spans[index][0] < end

    def add(self, start: int, end: int, parsed: ParsedColor | None, **fields: Any) -> None:
        if parsed is None or self.overlaps(start, end):
            return
        line = bisect.bisect_right(self.line_starts, start) - 1
        bisect.insort(self.spans, (start, end))
        self.results.append(
            ColorOccurrence(
                start=start,
                end=end,
                line=line,
                character=start - self.line_starts[line],
                original_text=self.text[start:end],
                parsed=parsed,
                **fields,
            )
        )


class ColorDetector:
    """Detects color occurrences in text.

    Literal colors need nothing but the codec; references, Tailwind classes
    and class names are resolved through the registry behind the resolver.
    """

    def __init__(self, resolver: VariableResolver):
        self.resolver = resolver
        self.registry = resolver.registry

    def collect(self, text: str) -> list[ColorOccurrence]:
        """Collect all color occurrences, ordered by start offset.

        Each span is reported at most once; a wrapped reference such as
        ``hsl(var(--x))`` hides the bare ``var(--x)`` inside it.
        """
        collector = _Collector(text)

        for match in CSS_VAR_IN_FUNCTION_PATTERN.finditer(text):
            function, name = match.group(1), match.group(2)
            value = self.resolver.resolve_declaration(name)
            if value is None:
                continue
            collector.add(
                match.start(),
                match.end(),
                parse_color(f"{function}({value})"),
                kind=OccurrenceKind.VARIABLE,
                variable_name=name,
                wrapped_in_function=True,
            )

        for match in FUNCTION_COLOR_PATTERN.finditer(text):
            collector.add(match.start(), match.end(), parse_color(match.group(0)))

        for match in HEX_COLOR_PATTERN.finditer(text):
            collector.add(match.start(), match.end(), parse_color(match.group(0)))

        for match in TAILWIND_HSL_PATTERN.finditer(text):
            collector.add(match.start(1), match.end(1), parse_color(match.group(1)))

        for match in CSS_VAR_PATTERN.finditer(text):
            self._add_reference(collector, match.start(), match.end(), match.group(1))

        for match in TAILWIND_CLASS_PATTERN.finditer(text):
            self._add_reference(
                collector,
                match.start(),
                match.end(),
                f"--{match.group(2)}",
                kind=OccurrenceKind.TAILWIND_CLASS,
                class_name=match.group(0),
            )

        for match in CLASS_ATTRIBUTE_PATTERN.finditer(text):
            offset = match.start(1)
            for token in re.finditer(r"\S+", match.group(1)):
                self._add_class(
                    collector, offset + token.start(), offset + token.end(), token.group(0)
                )

        occurrences = sorted(collector.results, key=lambda occ: occ.start)
        logger.debug(f"Detected {len(occurrences)} color occurrences")
        return occurrences

    def _add_reference(
        self,
        collector: _Collector,
        start: int,
        end: int,
        name: str,
        kind: OccurrenceKind = OccurrenceKind.VARIABLE,
        class_name: str | None = None,
    ) -> None:
        value = self.resolver.resolve_declaration(name)
        if value is None:
            return
        collector.add(
            start,
            end,
            parse_color(value),
            kind=kind,
            variable_name=name,
            class_name=class_name,
        )

    def _add_class(self, collector: _Collector, start: int, end: int, class_name: str) -> None:
        declarations = self.registry.get_classes_sorted(class_name)
        if not declarations:
            return
        resolved = self.resolver.resolve(declarations[0].raw_value)
        collector.add(
            start,
            end,
            parse_color(resolved),
            kind=OccurrenceKind.CSS_CLASS,
            class_name=class_name,
        )

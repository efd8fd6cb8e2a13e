"""CSS custom property scanner.

Extracts ``--name: value;`` declarations and class color properties from
CSS text, tagging each with its line, containing selector and selector
context (specificity, theme hint, media query).
"""

import re
from dataclasses import dataclass, field
from pathlib import Path

from ..colors import parse_color
from ..indexer_logging import LogCategory, get_category_logger
from ..performance import timed
from ..registry import (
    ClassDeclaration,
    ContextKind,
    Declaration,
    DeclarationContext,
    ThemeHint,
    VariableResolver,
)

logger = get_category_logger(LogCategory.SCANNER)

CSS_VARIABLE_PATTERN = re.compile(r"(--[\w-]+)\s*:\s*([^;]+);")
CLASS_COLOR_PATTERN = re.compile(
    r"\.([.\w-]+)\s*\{[^}]*?(color|background-color|border-color|background)\s*:\s*([^;]+);"
)
MEDIA_QUERY_PATTERN = re.compile(r"@media\s+([^{]+)")

DARK_THEME_MARKERS = ('.dark', '[data-theme="dark"]', '[data-mode="dark"]')
LIGHT_THEME_MARKERS = ('.light', '[data-theme="light"]')


@dataclass
class ScanResult:
    """Declarations extracted from one source document."""

    origin_id: str
    variables: list[Declaration] = field(default_factory=list)
    classes: list[ClassDeclaration] = field(default_factory=list)

    def local_lookup(self) -> dict[str, list[Declaration]]:
        """Variables of this document grouped by name."""
        lookup: dict[str, list[Declaration]] = {}
        for declaration in self.variables:
            lookup.setdefault(declaration.name, []).append(declaration)
        return lookup


def analyze_context(selector: str) -> DeclarationContext:
    """Derive kind, specificity, theme hint and media query from a selector."""
    normalized = selector.lower().strip()

    if normalized in (":root", "html"):
        specificity = 1
    elif "." in normalized:
        specificity = 10 + normalized.count(".") * 10
    elif "#" in normalized:
        specificity = 100
    else:
        specificity = 0

    if normalized in (":root", "html"):
        kind = ContextKind.ROOT
    elif "." in normalized or "[" in normalized:
        kind = ContextKind.CLASS
    elif normalized.startswith("@media"):
        kind = ContextKind.MEDIA
    else:
        kind = ContextKind.OTHER

    theme_hint = None
    if any(marker in normalized for marker in DARK_THEME_MARKERS):
        theme_hint = ThemeHint.DARK
    elif any(marker in normalized for marker in LIGHT_THEME_MARKERS):
        theme_hint = ThemeHint.LIGHT

    media_match = MEDIA_QUERY_PATTERN.search(selector)
    media_query = media_match.group(1).strip() if media_match else None

    return DeclarationContext(
        kind=kind,
        specificity=specificity,
        theme_hint=theme_hint,
        media_query=media_query,
    )


def find_containing_selector(text: str, index: int) -> str:
    """Find the selector of the block enclosing a text offset.

    Looks back for the nearest opening brace and returns the last
    non-comment line before it. Top-level text counts as ``:root``.
    """
    open_brace = text.rfind("{", 0, index)
    if open_brace == -1:
        return ":root"

    for line in reversed(text[:open_brace].split("\n")):
        # Only the part after a block closed on the same line
        candidate = line.rsplit("}", 1)[-1].strip()
        if candidate and not candidate.startswith("/*") and not candidate.endswith("*/"):
            return re.sub(r"\s+", " ", candidate)

    return ":root"


def _line_of(text: str, index: int) -> int:
    return text.count("\n", 0, index)


class CSSVariableScanner:
    """Scanner producing declarations from CSS source text.

    The scanner is pure: it returns a ScanResult and leaves registry writes
    to the caller.
    """

    SUPPORTED_EXTENSIONS = (".css", ".scss", ".sass", ".less", ".styl", ".pcss")

    def __init__(self, resolver: VariableResolver):
        """Initialize the scanner.

        Args:
            resolver: Resolver used to precompute resolved values, falling
                back to the registry for names not declared locally.
        """
        self.resolver = resolver

    def can_handle(self, file_path: Path) -> bool:
        """Check if this scanner can handle the given file."""
        return file_path.suffix.lower() in self.SUPPORTED_EXTENSIONS

    def scan_file(self, file_path: Path) -> ScanResult:
        """Scan a CSS file on disk.

        Raises:
            FileNotFoundError: If the file doesn't exist.
        """
        if not file_path.exists():
            raise FileNotFoundError(f"CSS file not found: {file_path}")
        content = file_path.read_text(encoding="utf-8")
        return self.scan(content, str(file_path))

    @timed("scan_css")
    def scan(self, text: str, origin_id: str) -> ScanResult:
        """Extract custom properties and class colors from CSS text.

        Args:
            text: CSS content to parse.
            origin_id: Identifier of the source document.

        Returns:
            ScanResult with variables in document order and class colors.
        """
        result = ScanResult(origin_id=origin_id)

        for match in CSS_VARIABLE_PATTERN.finditer(text):
            selector = find_containing_selector(text, match.start())
            result.variables.append(
                Declaration(
                    name=match.group(1),
                    raw_value=match.group(2).strip(),
                    origin_id=origin_id,
                    line=_line_of(text, match.start()),
                    selector=selector,
                    context=analyze_context(selector),
                )
            )

        local = result.local_lookup()
        for declaration in result.variables:
            declaration.resolved_value = self.resolver.resolve(
                declaration.raw_value, frozenset({declaration.name}), local
            )

        for match in CLASS_COLOR_PATTERN.finditer(text):
            raw_value = match.group(3).strip()
            resolved = self.resolver.resolve(raw_value, local=local)
            parsed = parse_color(resolved)
            if parsed is None:
                continue

            selector = find_containing_selector(text, match.start(2))
            result.classes.append(
                ClassDeclaration(
                    class_name=match.group(1),
                    property=match.group(2),
                    raw_value=raw_value,
                    origin_id=origin_id,
                    line=_line_of(text, match.start()),
                    selector=selector,
                    context=analyze_context(selector),
                    resolved_value=parsed.canonical_string,
                )
            )

        logger.debug(
            f"Scanned {origin_id}: {len(result.variables)} variables, "
            f"{len(result.classes)} class colors"
        )
        return result

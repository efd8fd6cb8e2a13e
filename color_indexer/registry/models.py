"""Declaration models for CSS custom properties and class color properties."""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ContextKind(Enum):
    """Type of selector a declaration lives under."""

    ROOT = "root"  # :root or html
    CLASS = "class"  # Class or attribute selector
    MEDIA = "media"  # Inside an @media block
    OTHER = "other"


class ThemeHint(Enum):
    """Theme inferred from the selector text."""

    LIGHT = "light"
    DARK = "dark"


@dataclass(frozen=True)
class DeclarationContext:
    """Selector context used to rank declarations.

    Specificity approximates CSS specificity: root < class < id.
    """

    kind: ContextKind = ContextKind.ROOT
    specificity: int = 1
    theme_hint: ThemeHint | None = None
    media_query: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "kind": self.kind.value,
            "specificity": self.specificity,
            "theme_hint": self.theme_hint.value if self.theme_hint else None,
            "media_query": self.media_query,
        }


@dataclass
class Declaration:
    """A custom property declaration, e.g. ``--primary: #3b82f6``."""

    name: str  # Including the -- prefix
    raw_value: str
    origin_id: str  # Source document identifier
    line: int = 0  # 0-indexed
    selector: str = ":root"
    context: DeclarationContext = DeclarationContext()
    resolved_value: str | None = None  # Value after nested var() expansion

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "raw_value": self.raw_value,
            "origin_id": self.origin_id,
            "line": self.line,
            "selector": self.selector,
            "context": self.context.to_dict(),
            "resolved_value": self.resolved_value,
        }


@dataclass
class ClassDeclaration:
    """A color property set by a CSS class, e.g. ``.brand { color: red }``."""

    class_name: str  # Without the leading dot
    property: str  # color, background-color, ...
    raw_value: str
    origin_id: str
    line: int = 0
    selector: str = ""
    context: DeclarationContext = DeclarationContext(kind=ContextKind.CLASS, specificity=20)
    resolved_value: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "class_name": self.class_name,
            "property": self.property,
            "raw_value": self.raw_value,
            "origin_id": self.origin_id,
            "line": self.line,
            "selector": self.selector,
            "context": self.context.to_dict(),
            "resolved_value": self.resolved_value,
        }

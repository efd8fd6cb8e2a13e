"""Registry for custom property and class color declarations.

Stores declarations produced by the scanner, keyed by name, in insertion
order. Sorted access by specificity returns a new list and never
reorders storage.
"""

from collections.abc import Iterable
from typing import Generic, Protocol, TypeVar

from ..indexer_logging import LogCategory, get_category_logger
from .models import ClassDeclaration, Declaration, DeclarationContext

logger = get_category_logger(LogCategory.REGISTRY)


class _HasOriginAndContext(Protocol):
    origin_id: str
    context: DeclarationContext


D = TypeVar("D", bound=_HasOriginAndContext)


class DeclarationTable(Generic[D]):
    """Name -> ordered list of declarations."""

    def __init__(self) -> None:
        self._entries: dict[str, list[D]] = {}

    def add(self, name: str, declaration: D) -> None:
        """Append a declaration; existing ones are never replaced."""
        self._entries.setdefault(name, []).append(declaration)

    def get(self, name: str) -> list[D] | None:
        """Declarations for a name in insertion order, or None."""
        return self._entries.get(name)

    def get_sorted(self, name: str) -> list[D]:
        """Declarations ordered by ascending specificity.

        Ties keep insertion order (``sorted`` is stable).
        """
        declarations = self._entries.get(name)
        if not declarations:
            return []
        return sorted(declarations, key=lambda decl: decl.context.specificity)

    def remove_by_origin(self, origin_id: str) -> int:
        """Drop every declaration from an origin.

        Names left with no declarations are deleted entirely.

        Returns:
            Number of declarations removed.
        """
        removed = 0
        for name in list(self._entries):
            declarations = self._entries[name]
            kept = [decl for decl in declarations if decl.origin_id != origin_id]
            removed += len(declarations) - len(kept)
            if not kept:
                del self._entries[name]
            elif len(kept) != len(declarations):
                self._entries[name] = kept
        return removed

    def clear(self) -> None:
        self._entries.clear()

    def has(self, name: str) -> bool:
        return name in self._entries

    def names(self) -> list[str]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries


class DeclarationRegistry:
    """Central registry for custom property and class color declarations."""

    def __init__(self) -> None:
        self._variables: DeclarationTable[Declaration] = DeclarationTable()
        self._classes: DeclarationTable[ClassDeclaration] = DeclarationTable()

    # Custom properties

    def add_variable(self, name: str, declaration: Declaration) -> None:
        """Add a custom property declaration."""
        self._variables.add(name, declaration)

    def get_variable(self, name: str) -> list[Declaration] | None:
        """Get all declarations for a custom property."""
        return self._variables.get(name)

    def get_variables_sorted(self, name: str) -> list[Declaration]:
        """Get declarations sorted by specificity (lowest first)."""
        return self._variables.get_sorted(name)

    def has_variable(self, name: str) -> bool:
        return self._variables.has(name)

    @property
    def variable_count(self) -> int:
        """Number of distinct custom property names."""
        return len(self._variables)

    def variable_names(self) -> list[str]:
        return self._variables.names()

    # Class color properties

    def add_class(self, name: str, declaration: ClassDeclaration) -> None:
        """Add a class color declaration."""
        self._classes.add(name, declaration)

    def get_class(self, name: str) -> list[ClassDeclaration] | None:
        """Get all color declarations for a class."""
        return self._classes.get(name)

    def get_classes_sorted(self, name: str) -> list[ClassDeclaration]:
        """Get class declarations sorted by specificity (lowest first)."""
        return self._classes.get_sorted(name)

    def has_class(self, name: str) -> bool:
        return self._classes.has(name)

    @property
    def class_count(self) -> int:
        """Number of distinct class names."""
        return len(self._classes)

    def class_names(self) -> list[str]:
        return self._classes.names()

    def sorted_class_names(self) -> list[str]:
        """Class names in alphabetical order."""
        return sorted(self._classes.names())

    # Bulk operations

    def remove_by_origin(self, origin_id: str) -> int:
        """Remove all declarations from a source document.

        Returns:
            Number of declarations removed across both tables.
        """
        removed = self._variables.remove_by_origin(origin_id)
        removed += self._classes.remove_by_origin(origin_id)
        if removed:
            logger.debug(f"Removed {removed} declarations from {origin_id}")
        return removed

    def replace_by_origin(
        self,
        origin_id: str,
        variables: Iterable[Declaration],
        classes: Iterable[ClassDeclaration] = (),
    ) -> None:
        """Swap every declaration from a source for a freshly scanned set."""
        self.remove_by_origin(origin_id)
        for declaration in variables:
            self.add_variable(declaration.name, declaration)
        for class_declaration in classes:
            self.add_class(class_declaration.class_name, class_declaration)

    def clear(self) -> None:
        """Clear all variables and classes."""
        self._variables.clear()
        self._classes.clear()

    def get_stats(self) -> dict[str, int]:
        """Get registry statistics."""
        return {
            "variables": self.variable_count,
            "classes": self.class_count,
        }

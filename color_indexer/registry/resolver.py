"""Nested var() resolution over the declaration registry.

The reference graph may contain cycles. Each branch carries its own
immutable ``visited`` set, so sibling references cannot trip each other's
cycle detection.
"""

import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass

from ..colors import ParsedColor, parse_color
from ..errors import CircularReferenceError
from ..indexer_logging import LogCategory, get_category_logger
from .models import Declaration, ThemeHint
from .registry import DeclarationRegistry

logger = get_category_logger(LogCategory.RESOLVER)

VAR_REFERENCE_PATTERN = re.compile(r"var\(\s*(--[\w-]+)\s*\)")


@dataclass
class VariableVariants:
    """Candidate declarations of one custom property by theme.

    Which variant to display is a presentation decision left to callers.
    """

    root: Declaration | None = None
    light: Declaration | None = None
    dark: Declaration | None = None
    others: tuple[Declaration, ...] = ()


class VariableResolver:
    """Expands ``var(--name)`` references using registry declarations."""

    def __init__(
        self,
        registry: DeclarationRegistry,
        on_circular_reference: Callable[[CircularReferenceError], None] | None = None,
    ):
        """Initialize the resolver.

        Args:
            registry: Registry providing declarations.
            on_circular_reference: Called once per resolve() call that hits
                a cycle.
        """
        self.registry = registry
        self.on_circular_reference = on_circular_reference

    def declarations_for(
        self,
        name: str,
        local: Mapping[str, Sequence[Declaration]] | None = None,
    ) -> list[Declaration]:
        """Specificity-sorted declarations, preferring a local lookup table."""
        if local:
            local_declarations = local.get(name)
            if local_declarations:
                return sorted(local_declarations, key=lambda decl: decl.context.specificity)
        return self.registry.get_variables_sorted(name)

    def variants_for(self, name: str) -> VariableVariants:
        """Group declarations into root, light and dark candidates."""
        variants = VariableVariants()
        others = []
        for declaration in self.declarations_for(name):
            hint = declaration.context.theme_hint
            if hint is ThemeHint.DARK and variants.dark is None:
                variants.dark = declaration
            elif hint is ThemeHint.LIGHT and variants.light is None:
                variants.light = declaration
            elif hint is None and variants.root is None:
                variants.root = declaration
            else:
                others.append(declaration)
        variants.others = tuple(others)
        return variants

    def resolve(
        self,
        value: str,
        visited: frozenset[str] = frozenset(),
        local: Mapping[str, Sequence[Declaration]] | None = None,
    ) -> str:
        """Expand every var() reference in a value.

        References with no declaration, and references whose expansion
        loops back onto the active chain, are left verbatim.

        Args:
            value: Text possibly containing var(--name) references.
            visited: Names already being resolved by the caller.
            local: Optional file-local declarations consulted before the
                registry.

        Returns:
            The resolved text.
        """
        cycles: list[CircularReferenceError] = []
        resolved, _ = self._expand(value, visited, (), local, cycles)

        if cycles:
            signal = cycles[0]
            logger.warning(str(signal))
            if self.on_circular_reference is not None:
                self.on_circular_reference(signal)

        return resolved

    def resolve_declaration(self, name: str) -> str | None:
        """Resolved value of the lowest-specificity declaration of a name."""
        declarations = self.declarations_for(name)
        if not declarations:
            return None
        return self.resolve(declarations[0].raw_value, frozenset({name}))

    def resolve_color(self, value: str) -> ParsedColor | None:
        """Resolve references, then parse the result as a color."""
        return parse_color(self.resolve(value))

    def _expand(
        self,
        value: str,
        visited: frozenset[str],
        chain: tuple[str, ...],
        local: Mapping[str, Sequence[Declaration]] | None,
        cycles: list[CircularReferenceError],
    ) -> tuple[str, bool]:
        """Expand references in value; second item flags a cycle."""
        hit_cycle = False

        def substitute(match: re.Match[str]) -> str:
            nonlocal hit_cycle
            name = match.group(1)

            if name in visited:
                cycles.append(CircularReferenceError(name, chain))
                hit_cycle = True
                return match.group(0)

            declarations = self.declarations_for(name, local)
            if not declarations:
                return match.group(0)

            nested, nested_cycle = self._expand(
                declarations[0].raw_value,
                visited | {name},
                (*chain, name),
                local,
                cycles,
            )
            if nested_cycle:
                hit_cycle = True
                return match.group(0)
            return nested

        resolved = VAR_REFERENCE_PATTERN.sub(substitute, value)
        return resolved, hit_cycle

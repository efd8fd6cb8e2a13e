"""Declaration registry and var() resolution."""

from .models import ClassDeclaration, ContextKind, Declaration, DeclarationContext, ThemeHint
from .registry import DeclarationRegistry, DeclarationTable
from .resolver import VAR_REFERENCE_PATTERN, VariableResolver, VariableVariants

__all__ = [
    "ClassDeclaration",
    "ContextKind",
    "Declaration",
    "DeclarationContext",
    "DeclarationRegistry",
    "DeclarationTable",
    "ThemeHint",
    "VAR_REFERENCE_PATTERN",
    "VariableResolver",
    "VariableVariants",
]

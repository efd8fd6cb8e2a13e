"""CSS scanning: turns stylesheet text into registry declarations."""

from .css_vars import CSSVariableScanner, ScanResult, analyze_context, find_containing_selector

__all__ = [
    "CSSVariableScanner",
    "ScanResult",
    "analyze_context",
    "find_containing_selector",
]

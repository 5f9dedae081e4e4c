"""
Temporal Layer

Year- and jurisdiction-based visibility. Toggles `hidden` flags only;
never adds or removes nodes and edges.
"""

from .filter import (
    FilterSummary,
    apply_time_filter,
    clear_filters,
    filter_by_jurisdiction,
    is_visible,
    visible_subgraph,
)

__all__ = [
    "FilterSummary",
    "apply_time_filter",
    "clear_filters",
    "filter_by_jurisdiction",
    "is_visible",
    "visible_subgraph",
]

"""
Temporal Filter
===============

Visibility of graph items by query year.

RULES:
======
- An item is visible in year Y iff start <= Y <= end (inclusive)
- Filtering toggles the `hidden` flag; topology is never modified
- An edge is hidden when its own interval excludes the year or
  either endpoint is hidden
- An inverted interval (start > end) is never visible
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Union

from ..contracts.graph import DateRange, EdgeAttributes, Jurisdiction, NodeAttributes
from ..observability.logging import get_logger
from ..store.graph_store import GraphStore

logger = get_logger(__name__)


@dataclass(frozen=True)
class FilterSummary:
    year: Optional[int]
    visible_nodes: int
    hidden_nodes: int
    visible_edges: int
    hidden_edges: int


def is_visible(item: Union[NodeAttributes, EdgeAttributes, DateRange], year: int) -> bool:
    valid_time = item if isinstance(item, DateRange) else item.valid_time
    return valid_time.contains(year)


def _apply(store: GraphStore, node_visible, year: Optional[int], edge_in_window) -> FilterSummary:
    node_updates = {}
    hidden_nodes = set()
    for key, attrs in store.nodes():
        hidden = not node_visible(attrs)
        if hidden:
            hidden_nodes.add(key)
        if attrs.hidden != hidden:
            node_updates[key] = {"hidden": hidden}

    edge_updates = {}
    hidden_edges = 0
    for edge in store.edges():
        hidden = (
            edge.source in hidden_nodes
            or edge.target in hidden_nodes
            or not edge_in_window(edge.attributes)
        )
        hidden_edges += hidden
        if edge.attributes.hidden != hidden:
            edge_updates[edge.key] = {"hidden": hidden}

    store.update_nodes(node_updates)
    store.update_edges(edge_updates)
    return FilterSummary(
        year=year,
        visible_nodes=store.number_of_nodes() - len(hidden_nodes),
        hidden_nodes=len(hidden_nodes),
        visible_edges=store.number_of_edges() - hidden_edges,
        hidden_edges=hidden_edges,
    )


def apply_time_filter(store: GraphStore, year: int) -> FilterSummary:
    """Hide every node and edge not valid in `year`."""
    summary = _apply(
        store,
        lambda attrs: is_visible(attrs, year),
        year,
        lambda attrs: is_visible(attrs, year),
    )
    logger.debug(
        "time_filter_applied",
        year=year,
        visible_nodes=summary.visible_nodes,
        visible_edges=summary.visible_edges,
    )
    return summary


def filter_by_jurisdiction(
    store: GraphStore,
    jurisdiction: Union[Jurisdiction, str],
    year: Optional[int] = None,
) -> FilterSummary:
    """
    Hide nodes outside `jurisdiction`, optionally combined with a year.

    Edges follow their endpoints; with a year they must also be valid in it.
    """
    jurisdiction = Jurisdiction(jurisdiction)

    def node_visible(attrs: NodeAttributes) -> bool:
        if attrs.jurisdiction is not jurisdiction:
            return False
        return year is None or is_visible(attrs, year)

    def edge_in_window(attrs: EdgeAttributes) -> bool:
        return year is None or is_visible(attrs, year)

    return _apply(store, node_visible, year, edge_in_window)


def clear_filters(store: GraphStore) -> FilterSummary:
    """Make everything visible again."""
    return _apply(store, lambda attrs: True, None, lambda attrs: True)


def visible_subgraph(store: GraphStore) -> GraphStore:
    """
    Copy holding only the currently visible items.

    Lets callers run algorithms that respect the active window without
    touching the canonical store.
    """
    subgraph = GraphStore(store.attributes)
    for key, attrs in store.nodes():
        if not attrs.hidden:
            subgraph.add_node(key, attrs)
    for edge in store.edges():
        if not edge.attributes.hidden and edge.source in subgraph and edge.target in subgraph:
            subgraph.add_edge(edge.key, edge.source, edge.target, edge.attributes)
    return subgraph

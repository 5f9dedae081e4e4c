"""
Betweenness centrality.

Computed on the directed graph with parallel edges collapsed to their
minimum weight and self-loops dropped. Weight is a distance. Scores are
normalised by ordered pairs, so isolated nodes score exactly 0.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

import networkx as nx

from ..observability.logging import get_logger
from .snapshot import GraphSnapshot

logger = get_logger(__name__)

MIN_NODE_SIZE = 5.0
NODE_SIZE_RANGE = 25.0


@dataclass
class CentralityConfig:
    """Configuration for betweenness centrality."""
    weighted: bool = True
    normalized: bool = True


def collapsed_digraph(snapshot: GraphSnapshot) -> nx.DiGraph:
    graph = nx.DiGraph()
    graph.add_nodes_from(snapshot.node_keys)
    for _, source, target, attributes in snapshot.edge_items():
        if source == target:
            continue
        weight = float(attributes.get("weight", 1))
        if graph.has_edge(source, target):
            graph[source][target]["weight"] = min(graph[source][target]["weight"], weight)
        else:
            graph.add_edge(source, target, weight=weight)
    return graph


def betweenness(snapshot: GraphSnapshot, config: Optional[CentralityConfig] = None) -> Dict[str, float]:
    config = config or CentralityConfig()
    graph = collapsed_digraph(snapshot)
    if graph.number_of_nodes() == 0:
        return {}
    scores = nx.betweenness_centrality(
        graph,
        weight="weight" if config.weighted else None,
        normalized=config.normalized,
    )
    logger.debug("betweenness_computed", nodes=len(scores))
    return {key: max(0.0, float(scores[key])) for key in snapshot.node_keys}


def normalize_scores(scores: Mapping[str, float]) -> Dict[str, float]:
    """Divide by the maximum score; a zero maximum maps everything to 0."""
    peak = max(scores.values(), default=0.0)
    if peak <= 0:
        return {key: 0.0 for key in scores}
    return {key: value / peak for key, value in scores.items()}


def size_for(normalized: float) -> float:
    return MIN_NODE_SIZE + NODE_SIZE_RANGE * normalized

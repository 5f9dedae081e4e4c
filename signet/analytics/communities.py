"""
Community detection (Louvain modularity optimisation).

Runs on the undirected weighted projection of the multigraph: parallel
and opposite edges between a pair sum their weight, self-loops keep
theirs. Output is {node_key: community_id} only, ids dense from 0.
Colouring is the caller's job.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Optional

import networkx as nx

from ..observability.logging import get_logger
from .snapshot import GraphSnapshot

logger = get_logger(__name__)


@dataclass
class CommunityConfig:
    """Configuration for Louvain."""
    resolution: float = 1.0
    threshold: float = 1e-7
    seed: int = 1893


def undirected_projection(snapshot: GraphSnapshot) -> nx.Graph:
    graph = nx.Graph()
    graph.add_nodes_from(snapshot.node_keys)
    for _, source, target, attributes in snapshot.edge_items():
        weight = float(attributes.get("weight", 1))
        if graph.has_edge(source, target):
            graph[source][target]["weight"] += weight
        else:
            graph.add_edge(source, target, weight=weight)
    return graph


def detect_communities(snapshot: GraphSnapshot, config: Optional[CommunityConfig] = None) -> Dict[str, int]:
    """
    Partition nodes into communities.

    Ids are assigned in order of each community's earliest node in the
    snapshot, so the same graph always yields the same mapping.
    """
    config = config or CommunityConfig()
    graph = undirected_projection(snapshot)
    if graph.number_of_nodes() == 0:
        return {}

    if graph.number_of_edges() == 0 or graph.size(weight="weight") == 0:
        partition = [{key} for key in snapshot.node_keys]
    else:
        partition = nx.community.louvain_communities(
            graph,
            weight="weight",
            resolution=config.resolution,
            threshold=config.threshold,
            seed=config.seed,
        )

    order = {key: i for i, key in enumerate(snapshot.node_keys)}
    ranked = sorted(partition, key=lambda members: min(order[m] for m in members))
    assignment = {
        key: community_id
        for community_id, members in enumerate(ranked)
        for key in members
    }
    logger.debug("communities_detected", nodes=len(assignment), communities=len(ranked))
    return {key: assignment[key] for key in snapshot.node_keys}

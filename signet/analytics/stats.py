"""
Summary statistics for a graph snapshot.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .snapshot import GraphSnapshot


@dataclass(frozen=True)
class GraphStats:
    node_count: int
    edge_count: int
    density: float
    average_degree: float
    top_influencers: List[Tuple[str, float]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "node_count": self.node_count,
            "edge_count": self.edge_count,
            "density": self.density,
            "average_degree": self.average_degree,
            "top_influencers": [
                {"key": key, "betweenness": score} for key, score in self.top_influencers
            ],
        }


def density(node_count: int, edge_count: int) -> float:
    """Directed density m / (n(n-1)); 0 for fewer than two nodes."""
    if node_count < 2:
        return 0.0
    return edge_count / (node_count * (node_count - 1))


def graph_stats(snapshot: GraphSnapshot, top: int = 5, scores: Optional[Dict[str, float]] = None) -> GraphStats:
    """
    Counts, density, average degree and the top nodes by betweenness.

    Betweenness comes from `scores` when given, else from the stored
    node attribute; nodes without a score are not ranked.
    """
    nodes = snapshot.document["nodes"]
    n, m = len(nodes), len(snapshot.document["edges"])

    if scores is None:
        scores = {
            key: attributes["betweenness"]
            for key, attributes in snapshot.node_items()
            if attributes.get("betweenness") is not None
        }
    ranked = sorted(scores.items(), key=lambda item: -item[1])[:top]

    return GraphStats(
        node_count=n,
        edge_count=m,
        density=density(n, m),
        average_degree=(2.0 * m / n) if n else 0.0,
        top_influencers=ranked,
    )

"""
Feature and adjacency extraction for representation learning.

Row order of every matrix is the snapshot's node order.
Feature row: [degree, in_degree, out_degree, financial_weight,
secrecy_level, *embedding]; nodes without an embedding (or with one of
a different dimension) get zeros in the embedding columns.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List, Tuple

import numpy as np

from ..observability.logging import get_logger
from .snapshot import GraphSnapshot

logger = get_logger(__name__)

STRUCTURAL_FEATURES = ("degree", "in_degree", "out_degree", "financial_weight", "secrecy_level")


@dataclass(frozen=True)
class GraphMatrices:
    keys: Tuple[str, ...]
    features: np.ndarray
    adjacency: np.ndarray
    signed_edges: Tuple[Tuple[int, int, int], ...]

    def index_of(self, key: str) -> int:
        return self.keys.index(key)


def _embedding_dimension(snapshot: GraphSnapshot, field: str) -> int:
    for _, attributes in snapshot.node_items():
        vector = attributes.get(field)
        if vector is not None:
            return len(vector)
    return 0


def feature_matrix(snapshot: GraphSnapshot, embedding_field: str = "embedding") -> np.ndarray:
    keys = snapshot.node_keys
    index = {key: i for i, key in enumerate(keys)}
    in_degree = np.zeros(len(keys))
    out_degree = np.zeros(len(keys))
    for _, source, target, _ in snapshot.edge_items():
        out_degree[index[source]] += 1
        in_degree[index[target]] += 1

    dimension = _embedding_dimension(snapshot, embedding_field)
    rows: List[List[float]] = []
    mismatched = 0
    for i, (_, attributes) in enumerate(snapshot.node_items()):
        row = [
            in_degree[i] + out_degree[i],
            in_degree[i],
            out_degree[i],
            float(attributes.get("financial_weight") or 0.0),
            float(attributes.get("secrecy_level") or 0.0),
        ]
        vector = attributes.get(embedding_field)
        if vector is not None and len(vector) == dimension:
            row.extend(float(v) for v in vector)
        else:
            if vector is not None:
                mismatched += 1
            row.extend([0.0] * dimension)
        rows.append(row)

    if mismatched:
        logger.warning("feature_embedding_mismatch", zero_filled=mismatched, expected=dimension)
    width = len(STRUCTURAL_FEATURES) + dimension
    return np.array(rows, dtype=float).reshape(len(keys), width)


def adjacency_matrix(snapshot: GraphSnapshot) -> np.ndarray:
    """Symmetric 0/1 adjacency; parallel edges collapse to 1."""
    keys = snapshot.node_keys
    index = {key: i for i, key in enumerate(keys)}
    matrix = np.zeros((len(keys), len(keys)))
    for _, source, target, _ in snapshot.edge_items():
        i, j = index[source], index[target]
        matrix[i, j] = 1.0
        matrix[j, i] = 1.0
    return matrix


def signed_edge_index(snapshot: GraphSnapshot) -> List[Tuple[int, int, int]]:
    index = {key: i for i, key in enumerate(snapshot.node_keys)}
    return [
        (index[source], index[target], int(attributes.get("sign", 0)))
        for _, source, target, attributes in snapshot.edge_items()
        if source != target
    ]


def extract_matrices(snapshot: GraphSnapshot, embedding_field: str = "embedding") -> GraphMatrices:
    return GraphMatrices(
        keys=tuple(snapshot.node_keys),
        features=feature_matrix(snapshot, embedding_field),
        adjacency=adjacency_matrix(snapshot),
        signed_edges=tuple(signed_edge_index(snapshot)),
    )


def row_normalize(adjacency: np.ndarray, epsilon: float = 1e-6) -> np.ndarray:
    """D^-1 A, mean aggregation over neighbours."""
    degree = adjacency.sum(axis=1, keepdims=True)
    return adjacency / (degree + epsilon)

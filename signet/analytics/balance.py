"""
Structural Balance
==================

Frustration index of a signed multigraph.

DEFINITIONS:
============
- Triangle: three distinct nodes pairwise joined by at least one edge
  in either direction (self-loops ignored)
- Balanced: product of the three edge signs > 0; anything else,
  including a zero product, is unbalanced
- Frustration index: unbalanced / (balanced + unbalanced), 0 when the
  graph has no triangles

MODES:
======
- compat (default): each node pair is represented by the first edge
  inserted between them, in either direction. The "pair" traversal
  finds triangles by common-neighbour intersection per adjacent pair
  and counts each one three times; the "ordered" traversal counts each
  once. Both report the same ratio.
- exact: every combination of parallel edges across the three pairs
  of a triangle is classified separately.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Set, Tuple
import itertools

from ..observability.logging import get_logger
from .snapshot import GraphSnapshot

logger = get_logger(__name__)

COMPAT = "compat"
EXACT = "exact"
PAIR_TRAVERSAL = "pair"
ORDERED_TRAVERSAL = "ordered"

Pair = FrozenSet[str]


@dataclass
class BalanceConfig:
    """Configuration for the frustration index."""
    mode: str = COMPAT
    traversal: str = PAIR_TRAVERSAL

    def __post_init__(self):
        if self.mode not in (COMPAT, EXACT):
            raise ValueError(f"Unknown balance mode: {self.mode!r}")
        if self.traversal not in (PAIR_TRAVERSAL, ORDERED_TRAVERSAL):
            raise ValueError(f"Unknown traversal: {self.traversal!r}")


@dataclass(frozen=True)
class BalanceReport:
    frustration_index: float
    balanced: int
    unbalanced: int
    triangles: int
    mode: str

    def to_dict(self) -> Dict[str, object]:
        return {
            "frustration_index": self.frustration_index,
            "balanced": self.balanced,
            "unbalanced": self.unbalanced,
            "triangles": self.triangles,
            "mode": self.mode,
        }


def frustration_ratio(balanced: int, unbalanced: int) -> float:
    total = balanced + unbalanced
    return unbalanced / total if total else 0.0


def _pair_signs(snapshot: GraphSnapshot) -> Dict[Pair, List[int]]:
    """Signs of all edges per unordered node pair, oldest first."""
    signs: Dict[Pair, List[int]] = {}
    for _, source, target, attributes in snapshot.edge_items():
        if source == target:
            continue
        signs.setdefault(frozenset((source, target)), []).append(int(attributes.get("sign", 0)))
    return signs


def _adjacency(keys: List[str], pairs) -> Dict[str, Set[str]]:
    neighbours: Dict[str, Set[str]] = {key: set() for key in keys}
    for pair in pairs:
        u, v = tuple(pair)
        neighbours[u].add(v)
        neighbours[v].add(u)
    return neighbours


def _triangles(keys: List[str], neighbours: Dict[str, Set[str]], traversal: str):
    """
    Yield (u, v, w) triangles.

    "pair" yields every triangle once per edge (three times); "ordered"
    yields it once, with u < v < w in snapshot order.
    """
    order = {key: i for i, key in enumerate(keys)}
    for u in keys:
        for v in sorted(neighbours[u], key=order.__getitem__):
            if order[v] <= order[u]:
                continue
            for w in sorted(neighbours[u] & neighbours[v], key=order.__getitem__):
                if traversal == ORDERED_TRAVERSAL and order[w] <= order[v]:
                    continue
                yield u, v, w


def frustration_index(snapshot: GraphSnapshot, config: Optional[BalanceConfig] = None) -> BalanceReport:
    config = config or BalanceConfig()
    keys = snapshot.node_keys
    signs = _pair_signs(snapshot)
    neighbours = _adjacency(keys, signs)

    balanced = unbalanced = 0
    distinct: Set[Tuple[str, ...]] = set()

    if config.mode == COMPAT:
        for u, v, w in _triangles(keys, neighbours, config.traversal):
            distinct.add(tuple(sorted((u, v, w))))
            product = (
                signs[frozenset((u, v))][0]
                * signs[frozenset((v, w))][0]
                * signs[frozenset((u, w))][0]
            )
            if product > 0:
                balanced += 1
            else:
                unbalanced += 1
    else:
        for u, v, w in _triangles(keys, neighbours, ORDERED_TRAVERSAL):
            distinct.add((u, v, w))
            combos = itertools.product(
                signs[frozenset((u, v))],
                signs[frozenset((v, w))],
                signs[frozenset((u, w))],
            )
            for a, b, c in combos:
                if a * b * c > 0:
                    balanced += 1
                else:
                    unbalanced += 1

    report = BalanceReport(
        frustration_index=frustration_ratio(balanced, unbalanced),
        balanced=balanced,
        unbalanced=unbalanced,
        triangles=len(distinct),
        mode=config.mode,
    )
    logger.debug("frustration_computed", **report.to_dict())
    return report

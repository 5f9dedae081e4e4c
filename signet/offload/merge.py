"""
Result reconciliation.

Writes a successful response's payload into the store as derived
attributes. Each merge is one atomic bulk update: either every value
is written or, on a validation error, none is. Keys deleted since the
snapshot was taken are skipped, so no derived values are ever written
for nodes that no longer exist.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping

from ..analytics.centrality import normalize_scores, size_for
from ..ingestion.rules import community_color
from ..observability.logging import get_logger
from ..store.graph_store import GraphStore
from .contracts import AlgorithmKind, ComputationResponse

logger = get_logger(__name__)


@dataclass(frozen=True)
class MergeSummary:
    kind: AlgorithmKind
    updated: int
    skipped: int


def _node_updates(store: GraphStore, updates: Dict[str, Dict[str, Any]], kind: AlgorithmKind) -> MergeSummary:
    live = {key: changes for key, changes in updates.items() if store.has_node(key)}
    store.update_nodes(live)
    return MergeSummary(kind, len(live), len(updates) - len(live))


def _merge_layout(store: GraphStore, payload: Mapping[str, Any]) -> MergeSummary:
    updates = {key: {"x": float(x), "y": float(y)} for key, (x, y) in payload.items()}
    return _node_updates(store, updates, AlgorithmKind.LAYOUT)


def _merge_communities(store: GraphStore, payload: Mapping[str, int]) -> MergeSummary:
    updates = {
        key: {"community": int(cid), "color": community_color(int(cid))}
        for key, cid in payload.items()
    }
    return _node_updates(store, updates, AlgorithmKind.COMMUNITIES)


def _merge_centrality(store: GraphStore, payload: Mapping[str, float]) -> MergeSummary:
    normalized = normalize_scores(payload)
    updates = {
        key: {"betweenness": float(score), "size": size_for(normalized[key])}
        for key, score in payload.items()
    }
    return _node_updates(store, updates, AlgorithmKind.CENTRALITY)


def _merge_balance(store: GraphStore, payload: Any) -> MergeSummary:
    index, summary = payload.frustration_index, payload.to_dict()
    store.set_attribute("frustration_index", index)
    store.set_attribute("balance", summary)
    return MergeSummary(AlgorithmKind.BALANCE, 1, 0)


def _merge_embeddings(store: GraphStore, payload: Mapping[str, Any]) -> MergeSummary:
    updates = {key: {"embedding": vector} for key, vector in payload.items()}
    return _node_updates(store, updates, AlgorithmKind.EMBEDDINGS)


def _merge_representation(store: GraphStore, payload: Any) -> MergeSummary:
    updates = {
        key: {"structural_embedding": vector}
        for key, vector in payload.embeddings.items()
    }
    return _node_updates(store, updates, AlgorithmKind.REPRESENTATION)


def _merge_search(store: GraphStore, payload: Any) -> MergeSummary:
    return MergeSummary(AlgorithmKind.SEARCH, 0, 0)


MERGERS: Dict[AlgorithmKind, Callable[[GraphStore, Any], MergeSummary]] = {
    AlgorithmKind.LAYOUT: _merge_layout,
    AlgorithmKind.COMMUNITIES: _merge_communities,
    AlgorithmKind.CENTRALITY: _merge_centrality,
    AlgorithmKind.BALANCE: _merge_balance,
    AlgorithmKind.EMBEDDINGS: _merge_embeddings,
    AlgorithmKind.REPRESENTATION: _merge_representation,
    AlgorithmKind.SEARCH: _merge_search,
}


def merge_response(store: GraphStore, response: ComputationResponse) -> MergeSummary:
    """Apply a successful response. Raises on invalid payload values."""
    if not response.succeeded:
        raise ValueError(f"Cannot merge a {response.status.value} response")
    summary = MERGERS[response.kind](store, response.payload)
    logger.info(
        "result_merged",
        kind=response.kind.value,
        request_id=response.request_id,
        updated=summary.updated,
        skipped=summary.skipped,
    )
    return summary

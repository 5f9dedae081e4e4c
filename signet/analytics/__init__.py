"""
Analytics Engine

Stateless algorithms over an immutable GraphSnapshot. None of them
touch the GraphStore: each returns derived values, and the offload
coordinator decides whether and how to merge them.
"""

from .balance import BalanceConfig, BalanceReport, frustration_index
from .centrality import CentralityConfig, betweenness, normalize_scores
from .communities import CommunityConfig, detect_communities
from .embeddings import (
    EmbeddingService,
    EmbeddingServiceConfig,
    SearchHit,
    cosine_similarity,
    embed_nodes,
    fallback_vector,
    node_text,
    semantic_search,
)
from .features import GraphMatrices, extract_matrices
from .layout import LayoutConfig, force_atlas2, run_layout
from .representation import (
    LinkPrediction,
    RepresentationConfig,
    RepresentationResult,
    predict_links,
    train_representation,
)
from .snapshot import GraphSnapshot
from .stats import GraphStats, density, graph_stats

__all__ = [
    "BalanceConfig",
    "BalanceReport",
    "frustration_index",
    "CentralityConfig",
    "betweenness",
    "normalize_scores",
    "CommunityConfig",
    "detect_communities",
    "EmbeddingService",
    "EmbeddingServiceConfig",
    "SearchHit",
    "cosine_similarity",
    "embed_nodes",
    "fallback_vector",
    "node_text",
    "semantic_search",
    "GraphMatrices",
    "extract_matrices",
    "LayoutConfig",
    "force_atlas2",
    "run_layout",
    "LinkPrediction",
    "RepresentationConfig",
    "RepresentationResult",
    "predict_links",
    "train_representation",
    "GraphSnapshot",
    "GraphStats",
    "density",
    "graph_stats",
]

"""
Algorithm Executor

Runs one ComputationRequest inside an isolated worker.

GUARANTEES:
===========
1. execute() is a module-level function, so it can be shipped to a
   process pool
2. Deterministic given the same snapshot and options
3. Never touches the live store
4. Never raises: every failure becomes a failure response
"""

from __future__ import annotations
from typing import Any, Callable, Dict
import time

from ..analytics.balance import BalanceConfig, frustration_index
from ..analytics.centrality import CentralityConfig, betweenness
from ..analytics.communities import CommunityConfig, detect_communities
from ..analytics.embeddings import (
    EmbeddingService,
    EmbeddingServiceConfig,
    embed_nodes,
    semantic_search,
)
from ..analytics.layout import LayoutConfig, run_layout
from ..analytics.representation import RepresentationConfig, train_representation
from ..analytics.snapshot import GraphSnapshot
from ..contracts.base import Error, ErrorCode, SignetError, UnknownAlgorithmError
from ..observability.logging import get_logger
from .contracts import AlgorithmKind, ComputationRequest, ComputationResponse, SearchOptions

logger = get_logger(__name__)

Algorithm = Callable[[GraphSnapshot, Any], Any]


def _embeddings(snapshot: GraphSnapshot, options: Any) -> Any:
    return embed_nodes(snapshot, EmbeddingService(options or EmbeddingServiceConfig()))


def _search(snapshot: GraphSnapshot, options: SearchOptions) -> Any:
    if not isinstance(options, SearchOptions):
        raise ValueError("search requires SearchOptions")
    query = options.query_vector
    if query is None:
        query = EmbeddingService(options.embedding).embed(options.query_text)
    return semantic_search(snapshot, query, options.top_k, options.vector_field)


ALGORITHMS: Dict[AlgorithmKind, Algorithm] = {
    AlgorithmKind.LAYOUT: lambda s, o: run_layout(s, o or LayoutConfig()),
    AlgorithmKind.COMMUNITIES: lambda s, o: detect_communities(s, o or CommunityConfig()),
    AlgorithmKind.CENTRALITY: lambda s, o: betweenness(s, o or CentralityConfig()),
    AlgorithmKind.BALANCE: lambda s, o: frustration_index(s, o or BalanceConfig()),
    AlgorithmKind.EMBEDDINGS: _embeddings,
    AlgorithmKind.REPRESENTATION: lambda s, o: train_representation(s, o or RepresentationConfig()),
    AlgorithmKind.SEARCH: _search,
}


def register_algorithm(kind: AlgorithmKind, algorithm: Algorithm) -> Algorithm:
    """
    Replace the implementation of a kind; returns the previous one.

    Only visible to workers sharing this interpreter (thread executor,
    or processes forked after the call).
    """
    previous = ALGORITHMS.get(kind)
    ALGORITHMS[kind] = algorithm
    return previous


def execute(request: ComputationRequest) -> ComputationResponse:
    start = time.perf_counter()
    algorithm = ALGORITHMS.get(request.kind)
    if algorithm is None:
        error = UnknownAlgorithmError(f"No algorithm registered for {request.kind}").as_error()
        return ComputationResponse.failure_response(request, error)

    try:
        payload = algorithm(request.snapshot, request.options)
    except SignetError as exc:
        error = exc.as_error()
    except Exception as exc:
        error = Error(ErrorCode.ALGORITHM_FAILED, f"{type(exc).__name__}: {exc}")
    else:
        return ComputationResponse.success_response(
            request, payload, (time.perf_counter() - start) * 1000
        )

    logger.error(
        "algorithm_failed",
        kind=request.kind.value,
        request_id=request.request_id,
        reason=error.message,
    )
    return ComputationResponse.failure_response(
        request,
        error.with_context("request_id", request.request_id),
        (time.perf_counter() - start) * 1000,
    )

"""
Graph Session
=============

Facade wiring the store, hydrator, history and offload coordinator
together for interactive use.

Every structural edit is made under the coordinator lock and
checkpointed in the undo history. Loading, restoring, undo and redo
replace the graph wholesale (new generation), so results from
computations started before them are discarded.
"""

from __future__ import annotations
from concurrent.futures import Executor
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from .analytics.embeddings import EmbeddingServiceConfig, SearchHit
from .analytics.snapshot import GraphSnapshot
from .analytics.stats import GraphStats, graph_stats
from .contracts.base import SignetError
from .contracts.graph import EdgeAttributes, Jurisdiction, NodeAttributes
from .ingestion.hydrator import HydratorConfig
from .ingestion.loader import RawDocument, load_document, load_file
from .ingestion.operations import ApplyReport, apply_suggested_operations, extraction_to_operations
from .ingestion.report import HydrationReport
from .ingestion.serialization import dumps, export_document, loads
from .observability.logging import get_logger
from .offload.contracts import AlgorithmKind, ComputationResponse, ResponseStatus, SearchOptions
from .offload.coordinator import OffloadConfig, OffloadCoordinator
from .store.graph_store import GraphStore
from .store.history import GraphHistory
from .temporal.filter import FilterSummary, apply_time_filter, clear_filters, filter_by_jurisdiction

logger = get_logger(__name__)

DEFAULT_ANALYSES = (
    AlgorithmKind.LAYOUT,
    AlgorithmKind.COMMUNITIES,
    AlgorithmKind.CENTRALITY,
    AlgorithmKind.BALANCE,
)


class GraphSession:
    def __init__(
        self,
        offload_config: Optional[OffloadConfig] = None,
        hydrator_config: Optional[HydratorConfig] = None,
        executor: Optional[Executor] = None,
        clock: Optional[Callable[[], int]] = None,
    ):
        self.store = GraphStore()
        self.history = GraphHistory(self.store)
        self.history.reset()
        self.coordinator = OffloadCoordinator(self.store, offload_config, executor)
        self._hydrator_config = hydrator_config
        self._clock = clock

    # =========================================================================
    # DOCUMENTS
    # =========================================================================

    def load(self, raw: RawDocument) -> HydrationReport:
        graph, report = load_document(raw, self._hydrator_config, self._clock)
        self._adopt(graph)
        return report

    def load_file(self, path: Union[str, Path]) -> HydrationReport:
        graph, report = load_file(path, self._hydrator_config, self._clock)
        self._adopt(graph)
        return report

    def restore(self, text: str) -> None:
        """Replace the graph with a canonical JSON snapshot."""
        self._adopt(loads(text))

    def _adopt(self, graph: GraphStore) -> None:
        with self.coordinator.lock:
            self.store.replace_with(graph)
            self.history.reset()
        logger.info(
            "graph_loaded",
            nodes=self.store.number_of_nodes(),
            edges=self.store.number_of_edges(),
            generation=self.store.generation,
        )

    def export(self) -> Dict[str, Any]:
        with self.coordinator.lock:
            return export_document(self.store)

    def dumps(self, indent: int = 2) -> str:
        with self.coordinator.lock:
            return dumps(self.store, indent)

    # =========================================================================
    # EDITS
    # =========================================================================

    def add_node(self, key: str, attributes: NodeAttributes) -> None:
        with self.coordinator.lock:
            self.store.add_node(key, attributes)
            self.history.checkpoint()

    def add_edge(self, key: str, source: str, target: str, attributes: EdgeAttributes) -> None:
        with self.coordinator.lock:
            self.store.add_edge(key, source, target, attributes)
            self.history.checkpoint()

    def update_node(self, key: str, **changes: Any) -> NodeAttributes:
        with self.coordinator.lock:
            updated = self.store.update_node(key, **changes)
            self.history.checkpoint()
            return updated

    def update_edge(self, key: str, **changes: Any) -> EdgeAttributes:
        with self.coordinator.lock:
            updated = self.store.update_edge(key, **changes)
            self.history.checkpoint()
            return updated

    def remove_node(self, key: str) -> List[str]:
        with self.coordinator.lock:
            removed = self.store.remove_node(key)
            self.history.checkpoint()
            return removed

    def remove_edge(self, key: str) -> None:
        with self.coordinator.lock:
            self.store.remove_edge(key)
            self.history.checkpoint()

    def apply_suggestions(
        self,
        suggestions: Union[Mapping[str, Any], Iterable[Mapping[str, Any]]],
        model_tag: Optional[str] = None,
        confidence: float = 0.75,
    ) -> ApplyReport:
        """Apply an operation list or a {nodes, edges} extraction result."""
        if isinstance(suggestions, Mapping):
            operations = suggestions.get("operations")
            if operations is None:
                operations = extraction_to_operations(suggestions)
        else:
            operations = list(suggestions)
        with self.coordinator.lock:
            report = apply_suggested_operations(self.store, operations, model_tag, confidence)
            if report.applied:
                self.history.checkpoint()
        return report

    def undo(self) -> bool:
        with self.coordinator.lock:
            return self.history.undo()

    def redo(self) -> bool:
        with self.coordinator.lock:
            return self.history.redo()

    # =========================================================================
    # FILTERS
    # =========================================================================

    def set_year(self, year: Optional[int]) -> FilterSummary:
        with self.coordinator.lock:
            if year is None:
                return clear_filters(self.store)
            return apply_time_filter(self.store, year)

    def set_jurisdiction(self, jurisdiction: Union[Jurisdiction, str], year: Optional[int] = None) -> FilterSummary:
        with self.coordinator.lock:
            return filter_by_jurisdiction(self.store, jurisdiction, year)

    # =========================================================================
    # ANALYTICS
    # =========================================================================

    def analyze(self, kind: AlgorithmKind, options: Any = None, timeout: Optional[float] = None,
                visible_only: bool = False) -> ComputationResponse:
        return self.coordinator.run(kind, options, timeout, visible_only)

    def analyze_all(
        self,
        kinds: Sequence[AlgorithmKind] = DEFAULT_ANALYSES,
        timeout: Optional[float] = None,
        visible_only: bool = False,
    ) -> List[ComputationResponse]:
        """Run several analyses concurrently; responses in submission order."""
        futures = [self.coordinator.submit(kind, visible_only=visible_only) for kind in kinds]
        return [future.result(timeout=timeout) for future in futures]

    def search(
        self,
        query: Union[str, Sequence[float]],
        top_k: int = 10,
        embedding: Optional[EmbeddingServiceConfig] = None,
        timeout: Optional[float] = None,
    ) -> List[SearchHit]:
        if isinstance(query, str):
            options = SearchOptions(query_text=query, top_k=top_k,
                                    embedding=embedding or EmbeddingServiceConfig())
        else:
            options = SearchOptions(query_vector=tuple(query), top_k=top_k,
                                    embedding=embedding or EmbeddingServiceConfig())
        response = self.coordinator.run(AlgorithmKind.SEARCH, options, timeout)
        if response.status is ResponseStatus.FAILURE:
            raise SignetError(response.error.message, response.error.code)
        # Search writes nothing, so a result computed on an older generation is still usable.
        return list(response.payload)

    def stats(self, top: int = 5) -> GraphStats:
        with self.coordinator.lock:
            snapshot = GraphSnapshot.from_store(self.store)
        return graph_stats(snapshot, top)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def close(self) -> None:
        self.coordinator.shutdown()

    def __enter__(self) -> GraphSession:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

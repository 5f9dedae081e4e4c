"""
Graph Snapshot
==============

Immutable, picklable copy of the graph handed to isolated algorithm
workers. Carries the canonical export plus the generation it was taken
from, so results can be matched back (or discarded as stale).
"""

from __future__ import annotations
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Tuple
import copy

import networkx as nx

from ..ingestion.serialization import export_document
from ..store.graph_store import GraphStore


@dataclass(frozen=True)
class GraphSnapshot:
    generation: int
    revision: int
    document: Mapping[str, Any]

    @staticmethod
    def from_store(store: GraphStore, visible_only: bool = False) -> GraphSnapshot:
        document = export_document(store)
        if visible_only:
            document = _visible_only(document)
        return GraphSnapshot(
            generation=store.generation,
            revision=store.revision,
            document=MappingProxyType(document),
        )

    def __reduce__(self):
        # MappingProxyType does not pickle; ship a plain dict across processes.
        return (_rebuild, (self.generation, self.revision, dict(self.document)))

    @property
    def node_keys(self) -> List[str]:
        return [record["key"] for record in self.document["nodes"]]

    def node_items(self) -> Iterator[Tuple[str, Dict[str, Any]]]:
        for record in self.document["nodes"]:
            yield record["key"], record["attributes"]

    def edge_items(self) -> Iterator[Tuple[str, str, str, Dict[str, Any]]]:
        """(key, source, target, attributes) in insertion order."""
        for record in self.document["edges"]:
            yield record["key"], record["source"], record["target"], record["attributes"]

    def to_multigraph(self) -> nx.MultiDiGraph:
        graph = nx.MultiDiGraph()
        for key, attributes in self.node_items():
            graph.add_node(key, **copy.deepcopy(attributes))
        for key, source, target, attributes in self.edge_items():
            graph.add_edge(source, target, key=key, **copy.deepcopy(attributes))
        return graph


def _rebuild(generation: int, revision: int, document: Dict[str, Any]) -> GraphSnapshot:
    return GraphSnapshot(generation, revision, MappingProxyType(document))


def _visible_only(document: Dict[str, Any]) -> Dict[str, Any]:
    nodes = [n for n in document["nodes"] if not n["attributes"].get("hidden")]
    kept = {n["key"] for n in nodes}
    edges = [
        e for e in document["edges"]
        if not e["attributes"].get("hidden") and e["source"] in kept and e["target"] in kept
    ]
    return dict(document, nodes=nodes, edges=edges)

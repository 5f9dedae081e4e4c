"""
Graph Store
===========

Canonical, mutable, in-memory multigraph. Single source of truth.

INVARIANTS:
===========
1. Every edge's source and target exist as nodes (no dangling edges)
2. Node and edge keys are unique within the graph and never change
3. Deleting a node removes exactly its incident edges
4. Bulk updates are validated in full before anything is committed

VERSIONING:
===========
- generation: advances when the graph is replaced wholesale
  (document load, snapshot restore, undo/redo). Async results are
  tagged with it and discarded on mismatch.
- revision: advances on every in-place mutation.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterator, List, Mapping, Optional, Set, Tuple
import copy
import itertools

import networkx as nx

from ..contracts.base import ErrorCode, GraphIntegrityError
from ..contracts.graph import EdgeAttributes, NodeAttributes, Provenance


@dataclass(frozen=True)
class EdgeRecord:
    """Read-only view of one edge."""
    key: str
    source: str
    target: str
    attributes: EdgeAttributes


class GraphStore:
    """
    Directed multigraph of typed nodes and signed edges.

    Wraps a networkx MultiDiGraph and keeps a global edge-key index,
    since networkx only scopes edge keys per node pair.
    Getters return copies; all mutation goes through this class.
    """

    def __init__(self, attributes: Optional[Mapping[str, Any]] = None):
        self._graph = nx.MultiDiGraph()
        self._edge_index: Dict[str, Tuple[str, str]] = {}
        self._edge_seq: Dict[str, int] = {}
        self._seq = itertools.count()
        self._attributes: Dict[str, Any] = dict(attributes or {})
        self._generation = 0
        self._revision = 0

    # =========================================================================
    # VERSIONING
    # =========================================================================

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def revision(self) -> int:
        return self._revision

    def _touch(self) -> None:
        self._revision += 1

    # =========================================================================
    # NODES
    # =========================================================================

    def add_node(self, key: str, attributes: NodeAttributes) -> None:
        if not isinstance(key, str) or not key:
            raise ValueError("Node key must be a non-empty string")
        if key in self._graph:
            raise GraphIntegrityError(f"Node {key!r} already exists", ErrorCode.DUPLICATE_KEY)
        self._graph.add_node(key, attrs=copy.deepcopy(attributes))
        self._touch()

    def has_node(self, key: str) -> bool:
        return key in self._graph

    def get_node(self, key: str) -> NodeAttributes:
        return copy.deepcopy(self._node_attrs(key))

    def node_keys(self) -> List[str]:
        return list(self._graph.nodes)

    def nodes(self) -> Iterator[Tuple[str, NodeAttributes]]:
        for key, data in list(self._graph.nodes(data="attrs")):
            yield key, copy.deepcopy(data)

    def update_node(self, key: str, **changes: Any) -> NodeAttributes:
        """Apply attribute changes to one node (validated, all-or-nothing)."""
        return self.update_nodes({key: changes})[key]

    def update_nodes(self, updates: Mapping[str, Mapping[str, Any]]) -> Dict[str, NodeAttributes]:
        """
        Apply attribute changes to many nodes atomically.

        Every change set is validated before any node is touched;
        a single invalid value leaves the graph unchanged.
        """
        staged: Dict[str, NodeAttributes] = {}
        for key, changes in updates.items():
            if "key" in changes:
                raise GraphIntegrityError(f"Node key {key!r} is immutable", ErrorCode.IMMUTABLE_KEY)
            staged[key] = replace(self._node_attrs(key), **changes)

        for key, attrs in staged.items():
            self._graph.nodes[key]["attrs"] = attrs
        if staged:
            self._touch()
        return {key: copy.deepcopy(attrs) for key, attrs in staged.items()}

    def append_node_provenance(self, key: str, record: Provenance) -> None:
        attrs = self._node_attrs(key)
        attrs.provenance.append(record)
        self._touch()

    def remove_node(self, key: str) -> List[str]:
        """Remove a node and its incident edges. Returns the removed edge keys."""
        self._node_attrs(key)
        incident = [
            edge_key for edge_key, (source, target) in self._edge_index.items()
            if source == key or target == key
        ]
        for edge_key in incident:
            del self._edge_index[edge_key]
            del self._edge_seq[edge_key]
        self._graph.remove_node(key)
        self._touch()
        return incident

    def _node_attrs(self, key: str) -> NodeAttributes:
        if key not in self._graph:
            raise GraphIntegrityError(f"Node {key!r} not found", ErrorCode.NODE_NOT_FOUND)
        return self._graph.nodes[key]["attrs"]

    # =========================================================================
    # EDGES
    # =========================================================================

    def add_edge(self, key: str, source: str, target: str, attributes: EdgeAttributes) -> None:
        if not isinstance(key, str) or not key:
            raise ValueError("Edge key must be a non-empty string")
        if key in self._edge_index:
            raise GraphIntegrityError(f"Edge {key!r} already exists", ErrorCode.DUPLICATE_KEY)
        for endpoint in (source, target):
            if endpoint not in self._graph:
                raise GraphIntegrityError(
                    f"Edge {key!r} references missing node {endpoint!r}",
                    ErrorCode.DANGLING_ENDPOINT,
                )
        self._graph.add_edge(source, target, key=key, attrs=copy.deepcopy(attributes))
        self._edge_index[key] = (source, target)
        self._edge_seq[key] = next(self._seq)
        self._touch()

    def has_edge(self, key: str) -> bool:
        return key in self._edge_index

    def get_edge(self, key: str) -> EdgeRecord:
        source, target = self._endpoints(key)
        return EdgeRecord(key, source, target, copy.deepcopy(self._edge_attrs(key)))

    def edge_keys(self) -> List[str]:
        return list(self._edge_index)

    def edges(self) -> Iterator[EdgeRecord]:
        """Iterate edges in insertion order."""
        for key in list(self._edge_index):
            yield self.get_edge(key)

    def edges_between(self, u: str, v: str, directed: bool = False) -> List[str]:
        """Keys of edges joining u and v, oldest first."""
        keys = list(self._graph.get_edge_data(u, v, default={}))
        if not directed and u != v:
            keys.extend(self._graph.get_edge_data(v, u, default={}))
        return sorted(keys, key=self._edge_seq.__getitem__)

    def update_edge(self, key: str, **changes: Any) -> EdgeAttributes:
        for forbidden in ("key", "source", "target"):
            if forbidden in changes:
                raise GraphIntegrityError(
                    f"Edge {forbidden} of {key!r} is immutable", ErrorCode.IMMUTABLE_KEY
                )
        source, target = self._endpoints(key)
        attrs = replace(self._edge_attrs(key), **changes)
        self._graph.edges[source, target, key]["attrs"] = attrs
        self._touch()
        return copy.deepcopy(attrs)

    def update_edges(self, updates: Mapping[str, Mapping[str, Any]]) -> None:
        """Atomic counterpart of update_edge for many edges."""
        staged: Dict[str, EdgeAttributes] = {}
        for key, changes in updates.items():
            if {"key", "source", "target"} & set(changes):
                raise GraphIntegrityError(f"Edge identity of {key!r} is immutable", ErrorCode.IMMUTABLE_KEY)
            staged[key] = replace(self._edge_attrs(key), **changes)
        for key, attrs in staged.items():
            source, target = self._edge_index[key]
            self._graph.edges[source, target, key]["attrs"] = attrs
        if staged:
            self._touch()

    def append_edge_provenance(self, key: str, record: Provenance) -> None:
        self._edge_attrs(key).provenance.append(record)
        self._touch()

    def remove_edge(self, key: str) -> None:
        source, target = self._endpoints(key)
        self._graph.remove_edge(source, target, key=key)
        del self._edge_index[key]
        del self._edge_seq[key]
        self._touch()

    def _endpoints(self, key: str) -> Tuple[str, str]:
        try:
            return self._edge_index[key]
        except KeyError:
            raise GraphIntegrityError(f"Edge {key!r} not found", ErrorCode.EDGE_NOT_FOUND) from None

    def _edge_attrs(self, key: str) -> EdgeAttributes:
        source, target = self._endpoints(key)
        return self._graph.edges[source, target, key]["attrs"]

    # =========================================================================
    # TOPOLOGY
    # =========================================================================

    def neighbors(self, key: str) -> Set[str]:
        """Undirected neighbourhood, self excluded."""
        self._node_attrs(key)
        found = set(self._graph.successors(key)) | set(self._graph.predecessors(key))
        found.discard(key)
        return found

    def degree(self, key: str) -> int:
        self._node_attrs(key)
        return self._graph.degree(key)

    def in_degree(self, key: str) -> int:
        self._node_attrs(key)
        return self._graph.in_degree(key)

    def out_degree(self, key: str) -> int:
        self._node_attrs(key)
        return self._graph.out_degree(key)

    def number_of_nodes(self) -> int:
        return self._graph.number_of_nodes()

    def number_of_edges(self) -> int:
        return len(self._edge_index)

    def __len__(self) -> int:
        return self.number_of_nodes()

    def __contains__(self, key: object) -> bool:
        return key in self._graph

    # =========================================================================
    # GRAPH ATTRIBUTES
    # =========================================================================

    @property
    def attributes(self) -> Dict[str, Any]:
        return copy.deepcopy(self._attributes)

    def get_attribute(self, name: str, default: Any = None) -> Any:
        return copy.deepcopy(self._attributes.get(name, default))

    def set_attribute(self, name: str, value: Any) -> None:
        self._attributes[name] = copy.deepcopy(value)
        self._touch()

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def replace_with(self, other: GraphStore) -> None:
        """
        Discard the current graph and adopt the contents of another.

        Advances the generation so results computed against the
        previous graph are recognised as stale.
        """
        self._graph = copy.deepcopy(other._graph)
        self._edge_index = dict(other._edge_index)
        self._edge_seq = dict(other._edge_seq)
        self._seq = itertools.count(max(self._edge_seq.values(), default=-1) + 1)
        self._attributes = copy.deepcopy(other._attributes)
        self._generation += 1
        self._touch()

    def clear(self) -> None:
        self.replace_with(GraphStore())

    def copy(self) -> GraphStore:
        clone = GraphStore(copy.deepcopy(self._attributes))
        clone._graph = copy.deepcopy(self._graph)
        clone._edge_index = dict(self._edge_index)
        clone._edge_seq = dict(self._edge_seq)
        clone._seq = itertools.count(max(self._edge_seq.values(), default=-1) + 1)
        clone._generation = self._generation
        clone._revision = self._revision
        return clone

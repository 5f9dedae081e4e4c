"""
Test helpers: compact graph builders and a sample loose document.
"""

from signet.analytics.snapshot import GraphSnapshot
from signet.contracts.graph import EdgeAttributes, NodeAttributes
from signet.store.graph_store import GraphStore

FIXED_TIMESTAMP = 1_700_000_000_000


def fixed_clock() -> int:
    return FIXED_TIMESTAMP


SAMPLE_DOCUMENT = {
    "metadata": {"title": "National Democracy network", "version": 3},
    "nodes": [
        {"id": "dmowski", "label": "Roman Dmowski", "type": "person", "dates": "1864-1939",
         "financial_weight": 0.8, "secrecy_level": 2, "importance": 10},
        {"id": "poplawski", "label": "Jan Ludwik Poplawski", "type": "Person", "dates": "1854-1908"},
        {"id": "liga", "label": "Liga Narodowa", "type": "organization", "dates": "1893-1928"},
        {"id": "pilsudski", "label": "Jozef Pilsudski", "type": "person", "dates": "1867-1935"},
        {"id": "przeglad", "label": "Przeglad Wszechpolski", "type": "publication", "dates": "1895 (approx.)"},
        {"id": "seyda", "label": "Marian Seyda", "type": "person"},
        {"label": "No identity here"},
    ],
    "edges": [
        {"source": "dmowski", "target": "liga", "relationship": "founded", "dates": "1893-1928"},
        {"source": "poplawski", "target": "liga", "relationship": "co-founded"},
        {"source": "dmowski", "target": "pilsudski", "relationship": "rywalizacja"},
        {"source": "dmowski", "target": "przeglad", "relationship": "edited"},
        {"source": "poplawski", "target": "przeglad", "relationship": "edited"},
        {"source": "dmowski", "target": "ghost", "relationship": "knew"},
        {"key": "explicit", "source": "seyda", "target": "dmowski", "relationship": "allied", "sign": 0},
    ],
    "myths": [
        {"id": "myth_jewish_conspiracy", "title": "Conspiracy myth", "claim": "A claim",
         "truth": "The truth", "relatedNodes": ["dmowski", "nobody"]},
    ],
    "timeline": [{"year": 1893, "event": "Liga Narodowa founded"}],
    "sources": [{"title": "Archive"}],
}


def build_store(nodes, edges=()):
    """
    Small store from compact specs.

    nodes: iterable of keys
    edges: iterable of (key, source, target, sign) or (key, source, target, sign, weight)
    """
    store = GraphStore()
    for key in nodes:
        store.add_node(key, NodeAttributes(label=key.upper()))
    for entry in edges:
        key, source, target, sign = entry[:4]
        weight = entry[4] if len(entry) > 4 else 1
        store.add_edge(key, source, target, EdgeAttributes(sign=sign, weight=weight))
    return store


def snapshot_of(nodes, edges=()):
    return GraphSnapshot.from_store(build_store(nodes, edges))

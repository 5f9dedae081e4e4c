"""
Storage Layer

RESPONSIBILITY: Hold the canonical graph
GUARANTEES: referential integrity, unique immutable keys, atomic bulk updates

Undo/redo checkpoints live in signet.store.history.
"""

from .graph_store import EdgeRecord, GraphStore

__all__ = ["EdgeRecord", "GraphStore"]

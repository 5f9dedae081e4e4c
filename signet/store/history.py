"""
Undo/redo history of canonical graph exports.

Each checkpoint is a full canonical document. Undo and redo replace the
graph wholesale, so they advance the store generation and any in-flight
algorithm results are discarded as stale.
"""

from __future__ import annotations
from typing import Any, Dict, List

from ..ingestion.serialization import export_document, import_canonical
from ..observability.logging import get_logger
from .graph_store import GraphStore

logger = get_logger(__name__)

MAX_HISTORY = 50


class GraphHistory:
    """Linear checkpoint history with a movable cursor."""

    def __init__(self, store: GraphStore, max_entries: int = MAX_HISTORY):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._store = store
        self._max_entries = max_entries
        self._entries: List[Dict[str, Any]] = []
        self._index = -1

    def reset(self) -> None:
        """Forget everything and checkpoint the current graph."""
        self._entries = [export_document(self._store)]
        self._index = 0

    def checkpoint(self) -> None:
        """Record the current graph, dropping any redo branch."""
        del self._entries[self._index + 1:]
        self._entries.append(export_document(self._store))
        if len(self._entries) > self._max_entries:
            del self._entries[0]
        self._index = len(self._entries) - 1

    @property
    def can_undo(self) -> bool:
        return self._index > 0

    @property
    def can_redo(self) -> bool:
        return self._index < len(self._entries) - 1

    def __len__(self) -> int:
        return len(self._entries)

    def undo(self) -> bool:
        if not self.can_undo:
            return False
        self._index -= 1
        self._restore()
        return True

    def redo(self) -> bool:
        if not self.can_redo:
            return False
        self._index += 1
        self._restore()
        return True

    def _restore(self) -> None:
        restored, _ = import_canonical(self._entries[self._index])
        self._store.replace_with(restored)
        logger.info("history_restored", index=self._index, generation=self._store.generation)

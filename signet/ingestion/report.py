"""
Ingestion reports.

Record-level defects are recovered from (the record is skipped) but
never silently: each one is logged and listed here.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional

from ..contracts.base import ErrorCode


@dataclass(frozen=True)
class RecordDefect:
    """One skipped input record."""
    record_type: str  # "node" | "edge" | "myth" | "myth_edge" | "operation"
    index: int
    code: ErrorCode
    message: str
    key: Optional[str] = None


@dataclass
class HydrationReport:
    source_shape: str = "loose"  # "loose" | "canonical"
    nodes_added: int = 0
    edges_added: int = 0
    myths_added: int = 0
    myth_edges_added: int = 0
    defects: List[RecordDefect] = field(default_factory=list)

    @property
    def skipped(self) -> int:
        return len(self.defects)

    def defects_of(self, record_type: str) -> List[RecordDefect]:
        return [d for d in self.defects if d.record_type == record_type]

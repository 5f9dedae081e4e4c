"""
Offload Layer

Isolated execution of analytics with ordered, atomic reconciliation.

Request -> isolated worker (snapshot only) -> terminal response ->
generation check -> atomic merge into the GraphStore.
"""

from .contracts import (
    AlgorithmKind,
    ComputationRequest,
    ComputationResponse,
    ResponseStatus,
    SearchOptions,
)
from .coordinator import OffloadConfig, OffloadCoordinator
from .executor import execute, register_algorithm
from .merge import MergeSummary, merge_response

__all__ = [
    "AlgorithmKind",
    "ComputationRequest",
    "ComputationResponse",
    "ResponseStatus",
    "SearchOptions",
    "OffloadConfig",
    "OffloadCoordinator",
    "execute",
    "register_algorithm",
    "MergeSummary",
    "merge_response",
]

"""
Offload Contracts

Messages exchanged between the coordinator and isolated workers.

WHY THIS STRUCTURE:
- A request carries everything the worker needs (snapshot + options);
  workers never see the live store
- A response is terminal: success with payload, or failure with an Error
- Every message carries the graph generation it was computed against
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Sequence
import uuid

from ..analytics.embeddings import EmbeddingServiceConfig
from ..analytics.snapshot import GraphSnapshot
from ..contracts.base import Error


class AlgorithmKind(Enum):
    LAYOUT = "layout"
    COMMUNITIES = "communities"
    CENTRALITY = "centrality"
    BALANCE = "balance"
    EMBEDDINGS = "embeddings"
    REPRESENTATION = "representation"
    SEARCH = "search"


class ResponseStatus(Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    DISCARDED_STALE = "discarded_stale"


@dataclass(frozen=True)
class SearchOptions:
    """Query for AlgorithmKind.SEARCH; give either text or a vector."""
    query_text: Optional[str] = None
    query_vector: Optional[Sequence[float]] = None
    top_k: int = 10
    vector_field: str = "embedding"
    embedding: EmbeddingServiceConfig = field(default_factory=EmbeddingServiceConfig)

    def __post_init__(self):
        if (self.query_text is None) == (self.query_vector is None):
            raise ValueError("SearchOptions needs exactly one of query_text or query_vector")


@dataclass(frozen=True)
class ComputationRequest:
    request_id: str
    kind: AlgorithmKind
    snapshot: GraphSnapshot
    options: Any = None
    submitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def generation(self) -> int:
        return self.snapshot.generation

    @staticmethod
    def create(kind: AlgorithmKind, snapshot: GraphSnapshot, options: Any = None) -> ComputationRequest:
        return ComputationRequest(
            request_id=f"{kind.value}_{uuid.uuid4().hex[:12]}",
            kind=kind,
            snapshot=snapshot,
            options=options,
        )


@dataclass(frozen=True)
class ComputationResponse:
    request_id: str
    kind: AlgorithmKind
    generation: int
    status: ResponseStatus
    payload: Any = None
    error: Optional[Error] = None
    duration_ms: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.status is ResponseStatus.SUCCESS

    @staticmethod
    def success_response(request: ComputationRequest, payload: Any, duration_ms: float) -> ComputationResponse:
        return ComputationResponse(
            request_id=request.request_id,
            kind=request.kind,
            generation=request.generation,
            status=ResponseStatus.SUCCESS,
            payload=payload,
            duration_ms=duration_ms,
        )

    @staticmethod
    def failure_response(request: ComputationRequest, error: Error, duration_ms: float = 0.0) -> ComputationResponse:
        return ComputationResponse(
            request_id=request.request_id,
            kind=request.kind,
            generation=request.generation,
            status=ResponseStatus.FAILURE,
            error=error,
            duration_ms=duration_ms,
        )

    def as_failure(self, error: Error) -> ComputationResponse:
        return replace(self, status=ResponseStatus.FAILURE, error=error)

    def as_stale(self) -> ComputationResponse:
        return replace(self, status=ResponseStatus.DISCARDED_STALE)

"""
Contracts Package

Immutable value types and the closed node/edge schema shared by every
layer. Layers import from here, never from each other's internals.
"""

from .base import (
    ErrorCode,
    Error,
    SignetError,
    IngestionError,
    GraphIntegrityError,
    ComputationInFlightError,
    UnknownAlgorithmError,
)
from .graph import (
    NodeCategory,
    Jurisdiction,
    Stance,
    ProvenanceMethod,
    SourceClassification,
    VALID_SIGNS,
    DateRange,
    Provenance,
    NodeAttributes,
    EdgeAttributes,
    now_millis,
)

__all__ = [
    "ErrorCode",
    "Error",
    "SignetError",
    "IngestionError",
    "GraphIntegrityError",
    "ComputationInFlightError",
    "UnknownAlgorithmError",
    "NodeCategory",
    "Jurisdiction",
    "Stance",
    "ProvenanceMethod",
    "SourceClassification",
    "VALID_SIGNS",
    "DateRange",
    "Provenance",
    "NodeAttributes",
    "EdgeAttributes",
    "now_millis",
]

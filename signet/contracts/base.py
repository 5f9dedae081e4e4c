"""
Base Contracts and Shared Types

Foundational error types used across all layers.

BOUNDARY ENFORCEMENT:
=====================
- This module is READ-ONLY from all layers
- Errors that cross a layer boundary as data use the frozen Error type
- Errors that abort an operation are raised as SignetError subclasses
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Tuple
from enum import Enum, auto


# =============================================================================
# ERROR STATES (Explicit, never silent)
# =============================================================================

class ErrorCode(Enum):
    """
    Explicit error codes for deterministic error handling.
    Every error state is enumerated.
    """
    # Ingestion errors (fatal)
    MALFORMED_DOCUMENT = auto()
    UNSUPPORTED_DOCUMENT = auto()

    # Record-level defects (recovered)
    MISSING_IDENTITY = auto()
    DANGLING_ENDPOINT = auto()
    DUPLICATE_KEY = auto()
    INVALID_RECORD = auto()

    # Graph integrity
    NODE_NOT_FOUND = auto()
    EDGE_NOT_FOUND = auto()
    IMMUTABLE_KEY = auto()

    # Algorithm failures
    ALGORITHM_FAILED = auto()
    ALGORITHM_IN_FLIGHT = auto()
    UNKNOWN_ALGORITHM = auto()
    STALE_GENERATION = auto()

    # Collaborator unavailability
    COLLABORATOR_UNAVAILABLE = auto()


@dataclass(frozen=True)
class Error:
    """
    Immutable error representation with full context.
    Errors are data, not exceptions - they can be stored and reported.
    """
    code: ErrorCode
    message: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    context: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    def with_context(self, key: str, value: str) -> Error:
        """Return new Error with additional context (immutable)."""
        return Error(
            code=self.code,
            message=self.message,
            timestamp=self.timestamp,
            context=self.context + ((key, value),)
        )

    def to_dict(self) -> dict:
        return {
            "code": self.code.name,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
            "context": dict(self.context),
        }


# =============================================================================
# EXCEPTIONS
# =============================================================================

class SignetError(Exception):
    """Root of all errors raised by this package."""

    code: ErrorCode = ErrorCode.INVALID_RECORD

    def __init__(self, message: str, code: Optional[ErrorCode] = None):
        super().__init__(message)
        if code is not None:
            self.code = code

    def as_error(self) -> Error:
        return Error(code=self.code, message=str(self))


class IngestionError(SignetError):
    """Top-level document could not be ingested. Aborts the whole load."""

    code = ErrorCode.MALFORMED_DOCUMENT


class GraphIntegrityError(SignetError):
    """A mutation would break referential integrity or key uniqueness."""

    code = ErrorCode.DANGLING_ENDPOINT


class ComputationInFlightError(SignetError):
    """An algorithm of the same kind is already running."""

    code = ErrorCode.ALGORITHM_IN_FLIGHT


class UnknownAlgorithmError(SignetError):
    code = ErrorCode.UNKNOWN_ALGORITHM

"""
Offload Coordinator
===================

Runs analytics off the caller's thread and reconciles results into the
GraphStore.

PROTOCOL:
=========
1. submit() snapshots the store and sends a ComputationRequest to an
   isolated executor (process pool by default, thread pool optional)
2. Single-flight per algorithm kind: submitting a kind that is already
   in flight raises ComputationInFlightError; nothing is queued
3. Responses are finalised strictly in submission order: a finished
   response waits until every earlier submission has finished
4. A response whose generation no longer matches the store is
   discarded (DISCARDED_STALE); otherwise it is merged atomically
5. Failures (in the algorithm, the executor or the merge) produce a
   FAILURE response and leave the graph untouched. Nothing is retried.

All finalisation happens under one re-entrant lock. Callers that mutate
the store while computations are running should hold `lock` too.
"""

from __future__ import annotations
from collections import OrderedDict
from concurrent.futures import Executor, Future, ProcessPoolExecutor, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
import threading

from ..analytics.snapshot import GraphSnapshot
from ..contracts.base import ComputationInFlightError, Error, ErrorCode, SignetError
from ..observability.logging import get_logger
from ..settings import settings
from ..store.graph_store import GraphStore
from .contracts import AlgorithmKind, ComputationRequest, ComputationResponse, ResponseStatus
from .executor import execute
from .merge import merge_response

logger = get_logger(__name__)

PROCESS = "process"
THREAD = "thread"


@dataclass
class OffloadConfig:
    """Configuration for the offload coordinator."""
    executor: str = field(default_factory=lambda: settings.executor)
    max_workers: int = field(default_factory=lambda: settings.max_workers)

    def __post_init__(self):
        if self.executor not in (PROCESS, THREAD):
            raise ValueError(f"executor must be 'process' or 'thread': {self.executor!r}")
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be at least 1: {self.max_workers}")


@dataclass
class _Pending:
    request: ComputationRequest
    result: Future
    worker: Optional[Future] = None
    done: bool = False


class OffloadCoordinator:
    """
    Coordinates isolated algorithm runs against one GraphStore.

    The returned futures resolve to ComputationResponse objects only
    after the response has been merged, discarded or failed.
    """

    def __init__(
        self,
        store: GraphStore,
        config: Optional[OffloadConfig] = None,
        executor: Optional[Executor] = None,
    ):
        self._store = store
        self._config = config or OffloadConfig()
        self._owns_executor = executor is None
        self._executor = executor or self._create_executor()
        self._lock = threading.RLock()
        self._pending: "OrderedDict[str, _Pending]" = OrderedDict()
        self._in_flight: Dict[AlgorithmKind, str] = {}

    def _create_executor(self) -> Executor:
        if self._config.executor == THREAD:
            return ThreadPoolExecutor(
                max_workers=self._config.max_workers, thread_name_prefix="signet-offload"
            )
        return ProcessPoolExecutor(max_workers=self._config.max_workers)

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    @property
    def store(self) -> GraphStore:
        return self._store

    def in_flight(self, kind: Optional[AlgorithmKind] = None) -> bool:
        with self._lock:
            if kind is None:
                return bool(self._in_flight)
            return kind in self._in_flight

    # =========================================================================
    # SUBMISSION
    # =========================================================================

    def submit(self, kind: AlgorithmKind, options: Any = None, visible_only: bool = False) -> Future:
        kind = AlgorithmKind(kind)
        with self._lock:
            if kind in self._in_flight:
                raise ComputationInFlightError(
                    f"{kind.value} is already running (request {self._in_flight[kind]})"
                )
            snapshot = GraphSnapshot.from_store(self._store, visible_only=visible_only)
            request = ComputationRequest.create(kind, snapshot, options)
            entry = _Pending(request=request, result=Future())
            entry.result.set_running_or_notify_cancel()
            self._pending[request.request_id] = entry
            self._in_flight[kind] = request.request_id
            logger.info(
                "computation_submitted",
                kind=kind.value,
                request_id=request.request_id,
                generation=request.generation,
            )
            try:
                entry.worker = self._executor.submit(execute, request)
            except RuntimeError as exc:
                # Executor already shut down.
                del self._pending[request.request_id]
                del self._in_flight[kind]
                raise SignetError(str(exc), ErrorCode.COLLABORATOR_UNAVAILABLE) from exc

        entry.worker.add_done_callback(lambda _, rid=request.request_id: self._on_worker_done(rid))
        return entry.result

    def run(self, kind: AlgorithmKind, options: Any = None, timeout: Optional[float] = None,
            visible_only: bool = False) -> ComputationResponse:
        """Submit and wait for the finalised response."""
        return self.submit(kind, options, visible_only).result(timeout=timeout)

    # =========================================================================
    # COMPLETION
    # =========================================================================

    def _on_worker_done(self, request_id: str) -> None:
        finished: List[Tuple[_Pending, ComputationResponse]] = []
        with self._lock:
            entry = self._pending.get(request_id)
            if entry is None:
                return
            entry.done = True
            while self._pending:
                head = next(iter(self._pending.values()))
                if not head.done:
                    break
                self._pending.popitem(last=False)
                try:
                    response = self._finalize(head)
                except Exception as exc:
                    response = self._unexpected_failure(head.request, exc)
                finally:
                    del self._in_flight[head.request.kind]
                finished.append((head, response))

        for done_entry, response in finished:
            done_entry.result.set_result(response)

    def _unexpected_failure(self, request: ComputationRequest, exc: Exception) -> ComputationResponse:
        error = Error(ErrorCode.ALGORITHM_FAILED, f"merge failed: {type(exc).__name__}: {exc}")
        logger.error("computation_failed", kind=request.kind.value,
                     request_id=request.request_id, reason=error.message)
        return ComputationResponse.failure_response(request, error)

    def _finalize(self, entry: _Pending) -> ComputationResponse:
        request = entry.request
        if entry.worker.cancelled():
            error = Error(ErrorCode.ALGORITHM_FAILED, "worker was cancelled")
            logger.error("computation_failed", kind=request.kind.value,
                         request_id=request.request_id, reason=error.message)
            return ComputationResponse.failure_response(request, error)
        failure = entry.worker.exception()
        if failure is not None:
            error = Error(ErrorCode.ALGORITHM_FAILED, f"{type(failure).__name__}: {failure}")
            logger.error("computation_failed", kind=request.kind.value,
                         request_id=request.request_id, reason=error.message)
            return ComputationResponse.failure_response(request, error)

        response: ComputationResponse = entry.worker.result()
        if response.status is ResponseStatus.FAILURE:
            logger.warning("computation_failed", kind=request.kind.value,
                           request_id=request.request_id,
                           reason=response.error.message if response.error else None)
            return response

        if response.generation != self._store.generation:
            logger.info(
                "computation_discarded",
                kind=request.kind.value,
                request_id=request.request_id,
                generation=response.generation,
                current_generation=self._store.generation,
            )
            return response.as_stale()

        try:
            merge_response(self._store, response)
        except (SignetError, ValueError, TypeError, KeyError) as exc:
            error = Error(ErrorCode.ALGORITHM_FAILED, f"merge failed: {exc}")
            logger.error("computation_failed", kind=request.kind.value,
                         request_id=request.request_id, reason=error.message)
            return response.as_failure(error)

        logger.info(
            "computation_completed",
            kind=request.kind.value,
            request_id=request.request_id,
            duration_ms=round(response.duration_ms, 2),
        )
        return response

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def shutdown(self, wait: bool = True) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=wait)

    def __enter__(self) -> OffloadCoordinator:
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()

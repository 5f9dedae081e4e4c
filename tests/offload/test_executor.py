"""
Executor and merge tests: workers never raise, merges are all-or-nothing.
"""

import pytest

from signet.analytics.balance import BalanceReport
from signet.analytics.snapshot import GraphSnapshot
from signet.contracts.base import ErrorCode
from signet.offload import executor
from signet.offload.contracts import (
    AlgorithmKind,
    ComputationRequest,
    ComputationResponse,
    ResponseStatus,
    SearchOptions,
)
from signet.offload.executor import execute, register_algorithm
from signet.offload.merge import merge_response

from tests.helpers import build_store, snapshot_of


def request_for(kind, snapshot=None, options=None):
    return ComputationRequest.create(kind, snapshot or snapshot_of(["a", "b"], [("ab", "a", "b", 1)]), options)


class TestExecute:
    def test_success(self):
        response = execute(request_for(AlgorithmKind.CENTRALITY))
        assert response.status is ResponseStatus.SUCCESS
        assert response.payload == {"a": 0.0, "b": 0.0}
        assert response.duration_ms >= 0

    def test_exception_becomes_failure(self, monkeypatch):
        def explode(snapshot, options):
            raise ZeroDivisionError("boom")

        monkeypatch.setitem(executor.ALGORITHMS, AlgorithmKind.LAYOUT, explode)
        request = request_for(AlgorithmKind.LAYOUT)
        response = execute(request)

        assert response.status is ResponseStatus.FAILURE
        assert response.error.code is ErrorCode.ALGORITHM_FAILED
        assert "ZeroDivisionError: boom" in response.error.message
        assert dict(response.error.context)["request_id"] == request.request_id

    def test_unregistered_kind(self, monkeypatch):
        monkeypatch.delitem(executor.ALGORITHMS, AlgorithmKind.BALANCE)
        response = execute(request_for(AlgorithmKind.BALANCE))
        assert response.error.code is ErrorCode.UNKNOWN_ALGORITHM

    def test_register_returns_previous(self, monkeypatch):
        monkeypatch.setitem(executor.ALGORITHMS, AlgorithmKind.SEARCH, executor.ALGORITHMS[AlgorithmKind.SEARCH])
        original = executor.ALGORITHMS[AlgorithmKind.SEARCH]

        def replacement(snapshot, options):
            return []

        assert register_algorithm(AlgorithmKind.SEARCH, replacement) is original
        assert executor.ALGORITHMS[AlgorithmKind.SEARCH] is replacement

    def test_search_by_vector(self):
        store = build_store(["a", "b"])
        store.update_node("a", embedding=[1.0, 0.0])
        store.update_node("b", embedding=[0.0, 1.0])
        options = SearchOptions(query_vector=(0.0, 1.0), top_k=1)
        response = execute(request_for(AlgorithmKind.SEARCH, GraphSnapshot.from_store(store), options))
        assert [hit.key for hit in response.payload] == ["b"]

    def test_search_without_options_fails(self):
        response = execute(request_for(AlgorithmKind.SEARCH))
        assert response.status is ResponseStatus.FAILURE


class TestSearchOptions:
    def test_exactly_one_query(self):
        with pytest.raises(ValueError):
            SearchOptions()
        with pytest.raises(ValueError):
            SearchOptions(query_text="a", query_vector=(1.0,))


class TestMerge:
    def test_layout_merge(self):
        store = build_store(["a", "b"])
        request = request_for(AlgorithmKind.LAYOUT, GraphSnapshot.from_store(store))
        response = ComputationResponse.success_response(request, {"a": (1.0, 2.0), "b": (3.0, 4.0)}, 1.0)
        summary = merge_response(store, response)
        assert summary.updated == 2
        assert store.get_node("b").position == (3.0, 4.0)

    def test_deleted_keys_skipped(self):
        store = build_store(["a", "b"])
        request = request_for(AlgorithmKind.COMMUNITIES, GraphSnapshot.from_store(store))
        store.remove_node("b")
        summary = merge_response(store, ComputationResponse.success_response(request, {"a": 0, "b": 1}, 1.0))
        assert (summary.updated, summary.skipped) == (1, 1)
        assert store.get_node("a").community == 0
        assert store.get_node("a").color == "#3d5c45"

    def test_centrality_sizes(self):
        store = build_store(["a", "b"])
        request = request_for(AlgorithmKind.CENTRALITY, GraphSnapshot.from_store(store))
        merge_response(store, ComputationResponse.success_response(request, {"a": 0.5, "b": 0.0}, 1.0))
        assert store.get_node("a").size == 30.0
        assert store.get_node("b").size == 5.0

    def test_balance_sets_graph_attribute(self):
        store = build_store(["a"])
        request = request_for(AlgorithmKind.BALANCE, GraphSnapshot.from_store(store))
        report = BalanceReport(0.25, 3, 1, 1, "compat")
        merge_response(store, ComputationResponse.success_response(request, report, 1.0))
        assert store.get_attribute("frustration_index") == 0.25
        assert store.get_attribute("balance")["unbalanced"] == 1

    def test_invalid_payload_changes_nothing(self):
        store = build_store(["a", "b"])
        request = request_for(AlgorithmKind.COMMUNITIES, GraphSnapshot.from_store(store))
        with pytest.raises(ValueError):
            merge_response(store, ComputationResponse.success_response(request, {"a": 0, "b": -1}, 1.0))
        assert store.get_node("a").community is None

    def test_failed_response_not_merged(self):
        store = build_store(["a"])
        request = request_for(AlgorithmKind.LAYOUT, GraphSnapshot.from_store(store))
        failed = ComputationResponse.failure_response(request, error=None)
        with pytest.raises(ValueError):
            merge_response(store, failed)

"""
Embedding Service Tests
=======================

Fallback vectors, lazy model loading and cosine search. No model is
ever downloaded: services run disabled, with a fake provider, or with
the sentence-transformers import patched out.
"""

import sys
import types

import numpy as np
import pytest

from signet.analytics.embeddings import (
    EmbeddingService,
    EmbeddingServiceConfig,
    cosine_similarity,
    embed_nodes,
    fallback_vector,
    node_text,
    semantic_search,
)
from signet.analytics.snapshot import GraphSnapshot

from tests.helpers import build_store, snapshot_of


class FakeProvider:
    """Maps each text to a vector from a lookup table."""

    def __init__(self, table, default=(0.0, 0.0, 1.0)):
        self.table = table
        self.default = default
        self.calls = 0

    def encode(self, texts):
        self.calls += 1
        return [list(self.table.get(text, self.default)) for text in texts]


def disabled_service(dimension=8):
    return EmbeddingService(EmbeddingServiceConfig(enabled=False, dimension=dimension))


class TestFallbackVector:
    def test_deterministic(self):
        assert fallback_vector("Dmowski", 16) == fallback_vector("Dmowski", 16)

    def test_values_in_unit_interval(self):
        vector = fallback_vector("Liga Narodowa", 384)
        assert len(vector) == 384
        assert all(0.0 <= v < 1.0 for v in vector)

    def test_anagrams_share_a_vector(self):
        # Only the character sum seeds the vector.
        assert fallback_vector("abc", 8) == fallback_vector("cba", 8)

    def test_self_similarity(self):
        vector = fallback_vector("query", 32)
        assert cosine_similarity(vector, vector) == pytest.approx(1.0)


class TestEmbeddingService:
    def test_disabled_uses_fallback(self):
        service = disabled_service()
        assert service.using_fallback
        assert service.embed("text") == fallback_vector("text", 8)

    def test_injected_provider(self):
        provider = FakeProvider({"a": (1.0, 0.0, 0.0)})
        service = EmbeddingService(provider=provider)
        assert not service.using_fallback
        assert service.embed_many(["a", "b"]) == [[1.0, 0.0, 0.0], [0.0, 0.0, 1.0]]

    def test_missing_library_falls_back(self, monkeypatch):
        monkeypatch.setitem(sys.modules, "sentence_transformers", None)
        service = EmbeddingService(EmbeddingServiceConfig(enabled=True, dimension=4))
        assert service.using_fallback
        assert service.embed("x") == fallback_vector("x", 4)

    def test_model_load_failure_falls_back(self, monkeypatch):
        module = types.ModuleType("sentence_transformers")

        def broken(*args, **kwargs):
            raise OSError("no weights")

        module.SentenceTransformer = broken
        monkeypatch.setitem(sys.modules, "sentence_transformers", module)

        service = EmbeddingService(EmbeddingServiceConfig(enabled=True, dimension=4))
        assert service.using_fallback

    def test_model_loaded_once(self, monkeypatch):
        loads = []

        class Model:
            def __init__(self, model_id, device):
                loads.append((model_id, device))

            def encode(self, texts, **kwargs):
                return np.ones((len(texts), 3))

        module = types.ModuleType("sentence_transformers")
        module.SentenceTransformer = Model
        monkeypatch.setitem(sys.modules, "sentence_transformers", module)

        service = EmbeddingService(EmbeddingServiceConfig(model_id="tiny", enabled=True))
        assert service.embed("a") == [1.0, 1.0, 1.0]
        service.embed("b")
        assert loads == [("tiny", "cpu")]


class TestEmbedNodes:
    def test_one_vector_per_node(self):
        vectors = embed_nodes(snapshot_of(["a", "b"]), disabled_service())
        assert list(vectors) == ["a", "b"]
        assert all(len(v) == 8 for v in vectors.values())

    def test_node_text(self):
        text = node_text({"label": "Roman Dmowski", "category": "person",
                          "jurisdiction": "Kongresowka", "secrecy_level": 2})
        assert text == "Label: Roman Dmowski. Type: person. Jurisdiction: Kongresowka. Secrecy Level: 2."


class TestSemanticSearch:
    @pytest.fixture
    def snapshot(self):
        store = build_store(["a", "b", "c", "d", "e"])
        store.update_node("a", embedding=[1.0, 0.0])
        store.update_node("b", embedding=[0.0, 1.0])
        store.update_node("c", embedding=[1.0, 1.0])
        store.update_node("d", embedding=[1.0, 0.0, 0.0])
        return GraphSnapshot.from_store(store)

    def test_ranked_by_similarity(self, snapshot):
        hits = semantic_search(snapshot, [1.0, 0.0])
        assert [hit.key for hit in hits] == ["a", "c", "b"]
        assert hits[0].score == pytest.approx(1.0)
        assert hits[0].label == "A"

    def test_top_k(self, snapshot):
        assert [hit.key for hit in semantic_search(snapshot, [1.0, 0.0], top_k=1)] == ["a"]
        assert semantic_search(snapshot, [1.0, 0.0], top_k=0) == []

    def test_ties_keep_node_order(self, snapshot):
        hits = semantic_search(snapshot, [0.0, 0.0])
        assert [hit.key for hit in hits] == ["a", "b", "c"]

    def test_mismatched_and_missing_vectors_skipped(self, snapshot):
        keys = [hit.key for hit in semantic_search(snapshot, [0.0, 1.0])]
        assert "d" not in keys and "e" not in keys

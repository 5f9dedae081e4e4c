"""
Feature extraction and GraphSAGE representation tests.
"""

import numpy as np
import pytest

from signet.analytics.features import extract_matrices, feature_matrix, row_normalize
from signet.analytics.representation import (
    GraphSAGETrainer,
    RepresentationConfig,
    predict_links,
    train_representation,
)
from signet.analytics.snapshot import GraphSnapshot

from tests.helpers import build_store, snapshot_of


@pytest.fixture
def signed_snapshot():
    return snapshot_of(
        ["a", "b", "c", "d"],
        [("ab", "a", "b", 1), ("bc", "b", "c", -1), ("cd", "c", "d", 1), ("da", "d", "a", 0)],
    )


class TestFeatures:
    def test_structural_columns(self, signed_snapshot):
        features = feature_matrix(signed_snapshot)
        assert features.shape == (4, 5)
        # a: out ab, in da
        assert features[0].tolist() == [2.0, 1.0, 1.0, 0.5, 1.0]

    def test_embedding_columns_zero_filled(self):
        store = build_store(["a", "b", "c"])
        store.update_node("a", embedding=[0.1, 0.2])
        store.update_node("b", embedding=[0.1, 0.2, 0.3])
        features = feature_matrix(GraphSnapshot.from_store(store))
        assert features.shape == (3, 7)
        assert features[0, 5:].tolist() == [0.1, 0.2]
        assert features[1, 5:].tolist() == [0.0, 0.0]
        assert features[2, 5:].tolist() == [0.0, 0.0]

    def test_matrices(self, signed_snapshot):
        matrices = extract_matrices(signed_snapshot)
        assert matrices.keys == ("a", "b", "c", "d")
        assert (matrices.adjacency == matrices.adjacency.T).all()
        assert matrices.signed_edges == ((0, 1, 1), (1, 2, -1), (2, 3, 1), (3, 0, 0))

    def test_row_normalize(self):
        adjacency = np.array([[0.0, 1.0, 1.0], [1.0, 0.0, 0.0], [0.0, 0.0, 0.0]])
        normalized = row_normalize(adjacency)
        assert normalized[0].sum() == pytest.approx(1.0, rel=1e-5)
        assert normalized[2].tolist() == [0.0, 0.0, 0.0]


class TestTraining:
    def test_deterministic(self, signed_snapshot):
        config = RepresentationConfig(epochs=5)
        first = train_representation(signed_snapshot, config)
        second = train_representation(signed_snapshot, config)
        assert first.embeddings == second.embeddings
        assert first.losses == second.losses

    def test_output_shape(self, signed_snapshot):
        result = train_representation(signed_snapshot, RepresentationConfig(epochs=3, output_dim=8))
        assert list(result.embeddings) == ["a", "b", "c", "d"]
        assert all(len(v) == 8 for v in result.embeddings.values())
        assert all(x >= 0 for v in result.embeddings.values() for x in v)
        assert len(result.losses) == 3

    def test_positive_edges_pull_together(self):
        snapshot = snapshot_of(["a", "b"], [("ab", "a", "b", 1)])
        result = train_representation(snapshot, RepresentationConfig(epochs=30))
        assert result.losses[-1] <= result.losses[0]

    def test_empty_graph(self):
        assert train_representation(snapshot_of([])).embeddings == {}

    def test_gradients_match_finite_differences(self, signed_snapshot):
        matrices = extract_matrices(signed_snapshot)
        adj = row_normalize(matrices.adjacency)
        x = np.random.default_rng(7).normal(size=matrices.features.shape)
        edges = matrices.signed_edges
        trainer = GraphSAGETrainer(x.shape[1], RepresentationConfig(hidden_dim=6, output_dim=4, margin=100.0))

        _, dw1, dw2 = trainer.gradients(x, adj, edges)

        step = 1e-6
        for weights, analytic in ((trainer.w1, dw1), (trainer.w2, dw2)):
            numeric = np.zeros_like(weights)
            for index in np.ndindex(weights.shape):
                original = weights[index]
                weights[index] = original + step
                upper = trainer.loss(x, adj, edges)
                weights[index] = original - step
                lower = trainer.loss(x, adj, edges)
                weights[index] = original
                numeric[index] = (upper - lower) / (2 * step)
            assert np.allclose(analytic, numeric, rtol=1e-4, atol=1e-5)


class TestLinkPrediction:
    def test_similar_pairs_above_threshold(self):
        embeddings = {"a": [1.0, 0.0], "b": [0.99, 0.05], "c": [0.0, 1.0]}
        predictions = predict_links(embeddings, threshold=0.9)
        assert [(p.source, p.target) for p in predictions] == [("a", "b")]

    def test_existing_pairs_skipped(self):
        embeddings = {"a": [1.0, 0.0], "b": [1.0, 0.0]}
        assert predict_links(embeddings, existing={frozenset(("a", "b"))}) == []

"""
Layout tests: determinism, starting positions, Barnes-Hut accuracy.
"""

import math

import numpy as np
import pytest

from signet.analytics.layout import LayoutConfig, force_atlas2, run_layout
from signet.analytics.snapshot import GraphSnapshot

from tests.helpers import build_store, snapshot_of


@pytest.fixture
def ring_snapshot():
    keys = [f"n{i}" for i in range(8)]
    edges = [(f"e{i}", keys[i], keys[(i + 1) % 8], 1) for i in range(8)]
    return snapshot_of(keys, edges)


class TestRunLayout:
    def test_same_input_same_positions(self, ring_snapshot):
        config = LayoutConfig(iterations=30)
        assert run_layout(ring_snapshot, config) == run_layout(ring_snapshot, config)

    def test_every_node_positioned(self, ring_snapshot):
        positions = run_layout(ring_snapshot, LayoutConfig(iterations=20))
        assert list(positions) == ring_snapshot.node_keys
        for x, y in positions.values():
            assert math.isfinite(x) and math.isfinite(y)

    def test_zero_iterations_keeps_explicit_positions(self):
        store = build_store(["a", "b"], [("ab", "a", "b", 1)])
        store.update_node("a", x=1.0, y=2.0)
        store.update_node("b", x=-3.0, y=4.0)
        positions = run_layout(GraphSnapshot.from_store(store), LayoutConfig(iterations=0))
        assert positions == {"a": (1.0, 2.0), "b": (-3.0, 4.0)}

    def test_self_loops_ignored(self):
        with_loop = snapshot_of(["a", "b"], [("ab", "a", "b", 1), ("aa", "a", "a", 1)])
        without = snapshot_of(["a", "b"], [("ab", "a", "b", 1)])
        config = LayoutConfig(iterations=10)
        assert run_layout(with_loop, config) == run_layout(without, config)

    def test_empty_graph(self):
        assert run_layout(snapshot_of([]), LayoutConfig(iterations=5)) == {}

    def test_invalid_config(self):
        with pytest.raises(ValueError):
            LayoutConfig(iterations=-1)


class TestForceAtlas2:
    def test_barnes_hut_matches_exact_with_small_theta(self):
        rng = np.random.default_rng(7)
        positions = rng.uniform(-10, 10, size=(12, 2))
        edges = np.array([(i, (i + 1) % 12) for i in range(12)])
        weights = np.ones(len(edges))

        exact = force_atlas2(positions, edges, weights, LayoutConfig(iterations=5, barnes_hut=False))
        approx = force_atlas2(positions, edges, weights, LayoutConfig(iterations=5, theta=1e-9))
        assert approx == pytest.approx(exact, rel=1e-6, abs=1e-9)

    def test_connected_pair_ends_closer_than_isolated_pair(self):
        positions = np.array([[-10.0, 0.0], [10.0, 0.0], [0.0, -10.0], [0.0, 10.0]])
        edges = np.array([(0, 1)])
        result = force_atlas2(positions, edges, np.ones(1), LayoutConfig(iterations=100, barnes_hut=False))
        connected = np.linalg.norm(result[0] - result[1])
        isolated = np.linalg.norm(result[2] - result[3])
        assert connected < isolated

    def test_does_not_modify_input(self):
        positions = np.array([[1.0, 0.0], [0.0, 1.0]])
        force_atlas2(positions, np.empty((0, 2), dtype=int), np.empty(0), LayoutConfig(iterations=3))
        assert positions.tolist() == [[1.0, 0.0], [0.0, 1.0]]

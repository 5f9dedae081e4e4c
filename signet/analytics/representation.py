"""
Representation Learning
=======================

Two-layer GraphSAGE-style encoder trained on a signed contrastive loss.

MODEL:
======
    h1 = relu([X  | A X ] W1)
    z  = relu([h1 | A h1] W2)

A is the row-normalised adjacency (mean aggregation).

LOSS:
=====
    sum over positive edges  ||z_u - z_v||^2
  + sum over negative edges  max(0, margin - ||z_u - z_v||^2)

Neutral (sign 0) edges take part in aggregation only. Gradients are
computed by hand and applied with Adam. Weights are initialised from a
seeded generator, so training is fully deterministic.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..observability.logging import get_logger
from .embeddings import cosine_similarity
from .features import GraphMatrices, extract_matrices, row_normalize
from .snapshot import GraphSnapshot

logger = get_logger(__name__)


@dataclass
class RepresentationConfig:
    """Configuration for the GraphSAGE trainer."""
    hidden_dim: int = 32
    output_dim: int = 16
    epochs: int = 20
    learning_rate: float = 0.01
    margin: float = 1.0
    seed: int = 1893
    beta1: float = 0.9
    beta2: float = 0.999
    epsilon: float = 1e-8
    embedding_field: str = "embedding"


@dataclass
class RepresentationResult:
    embeddings: Dict[str, List[float]]
    losses: List[float] = field(default_factory=list)


class _Adam:
    def __init__(self, shape: Tuple[int, int], config: RepresentationConfig):
        self._config = config
        self._m = np.zeros(shape)
        self._v = np.zeros(shape)
        self._t = 0

    def step(self, weights: np.ndarray, grad: np.ndarray) -> np.ndarray:
        c = self._config
        self._t += 1
        self._m = c.beta1 * self._m + (1 - c.beta1) * grad
        self._v = c.beta2 * self._v + (1 - c.beta2) * grad ** 2
        m_hat = self._m / (1 - c.beta1 ** self._t)
        v_hat = self._v / (1 - c.beta2 ** self._t)
        return weights - c.learning_rate * m_hat / (np.sqrt(v_hat) + c.epsilon)


def _glorot(rng: np.random.Generator, fan_in: int, fan_out: int) -> np.ndarray:
    std = np.sqrt(2.0 / (fan_in + fan_out))
    return rng.normal(0.0, std, size=(fan_in, fan_out))


class GraphSAGETrainer:
    """Holds the two weight matrices; fit() trains, embed() runs a forward pass."""

    def __init__(self, input_dim: int, config: Optional[RepresentationConfig] = None):
        self._config = config or RepresentationConfig()
        rng = np.random.default_rng(self._config.seed)
        self.w1 = _glorot(rng, 2 * input_dim, self._config.hidden_dim)
        self.w2 = _glorot(rng, 2 * self._config.hidden_dim, self._config.output_dim)

    def _forward(self, x: np.ndarray, adj: np.ndarray):
        c1 = np.concatenate([x, adj @ x], axis=1)
        p1 = c1 @ self.w1
        h1 = np.maximum(p1, 0.0)
        c2 = np.concatenate([h1, adj @ h1], axis=1)
        p2 = c2 @ self.w2
        z = np.maximum(p2, 0.0)
        return c1, p1, c2, p2, z

    def _loss_and_grad(self, z: np.ndarray, edges: Sequence[Tuple[int, int, int]]) -> Tuple[float, np.ndarray]:
        loss = 0.0
        grad = np.zeros_like(z)
        for u, v, sign in edges:
            diff = z[u] - z[v]
            dist2 = float(diff @ diff)
            if sign > 0:
                loss += dist2
                grad[u] += 2 * diff
                grad[v] -= 2 * diff
            elif sign < 0 and dist2 < self._config.margin:
                loss += self._config.margin - dist2
                grad[u] -= 2 * diff
                grad[v] += 2 * diff
        return loss, grad

    def gradients(
        self, x: np.ndarray, adj: np.ndarray, edges: Sequence[Tuple[int, int, int]]
    ) -> Tuple[float, np.ndarray, np.ndarray]:
        """Loss and its gradients with respect to w1 and w2."""
        hidden = self._config.hidden_dim
        c1, p1, c2, p2, z = self._forward(x, adj)
        loss, dz = self._loss_and_grad(z, edges)

        dp2 = dz * (p2 > 0)
        dw2 = c2.T @ dp2
        dc2 = dp2 @ self.w2.T
        dh1 = dc2[:, :hidden] + adj.T @ dc2[:, hidden:]
        dp1 = dh1 * (p1 > 0)
        dw1 = c1.T @ dp1
        return loss, dw1, dw2

    def loss(self, x: np.ndarray, adj: np.ndarray, edges: Sequence[Tuple[int, int, int]]) -> float:
        return self._loss_and_grad(self.embed(x, adj), edges)[0]

    def fit(self, x: np.ndarray, adj: np.ndarray, edges: Sequence[Tuple[int, int, int]]) -> List[float]:
        adam1 = _Adam(self.w1.shape, self._config)
        adam2 = _Adam(self.w2.shape, self._config)
        losses = []
        for _ in range(self._config.epochs):
            loss, dw1, dw2 = self.gradients(x, adj, edges)
            losses.append(loss)
            self.w1 = adam1.step(self.w1, dw1)
            self.w2 = adam2.step(self.w2, dw2)
        return losses

    def embed(self, x: np.ndarray, adj: np.ndarray) -> np.ndarray:
        return self._forward(x, adj)[-1]


def train_on_matrices(matrices: GraphMatrices, config: Optional[RepresentationConfig] = None) -> RepresentationResult:
    config = config or RepresentationConfig()
    if not matrices.keys:
        return RepresentationResult(embeddings={})
    adj = row_normalize(matrices.adjacency)
    trainer = GraphSAGETrainer(matrices.features.shape[1], config)
    losses = trainer.fit(matrices.features, adj, matrices.signed_edges)
    z = trainer.embed(matrices.features, adj)
    logger.debug(
        "representation_trained",
        nodes=len(matrices.keys),
        epochs=config.epochs,
        final_loss=losses[-1] if losses else None,
    )
    return RepresentationResult(
        embeddings={key: z[i].tolist() for i, key in enumerate(matrices.keys)},
        losses=losses,
    )


def train_representation(snapshot: GraphSnapshot, config: Optional[RepresentationConfig] = None) -> RepresentationResult:
    config = config or RepresentationConfig()
    return train_on_matrices(extract_matrices(snapshot, config.embedding_field), config)


@dataclass(frozen=True)
class LinkPrediction:
    source: str
    target: str
    similarity: float

    def to_dict(self) -> Dict[str, object]:
        return {"source": self.source, "target": self.target, "similarity": self.similarity}


def predict_links(
    embeddings: Dict[str, Sequence[float]],
    threshold: float = 0.9,
    existing: Optional[set] = None,
) -> List[LinkPrediction]:
    """
    Candidate links between nodes whose embeddings have cosine > threshold.

    `existing` holds frozenset pairs to leave out (already connected).
    """
    keys = list(embeddings)
    existing = existing or set()
    predictions = []
    for i, u in enumerate(keys):
        for v in keys[i + 1:]:
            if frozenset((u, v)) in existing:
                continue
            similarity = cosine_similarity(embeddings[u], embeddings[v])
            if similarity > threshold:
                predictions.append(LinkPrediction(u, v, similarity))
    return predictions

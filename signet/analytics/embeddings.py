"""
Embedding Service
=================

Text embeddings for nodes and cosine-similarity search over them.

COLLABORATOR:
=============
Embedding is delegated to a sentence-transformers model, loaded lazily
on first use. When the model cannot be loaded (library missing, no
weights, disabled by configuration) the service degrades to a
deterministic fallback vector so search keeps working:

    seed = sum of character codes
    x_i  = sin(seed + i) * 10000
    v_i  = x_i - floor(x_i)

Search itself never thresholds: it ranks and returns raw scores.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Protocol, Sequence
import math

import numpy as np

from ..observability.logging import get_logger
from ..settings import settings
from .snapshot import GraphSnapshot

logger = get_logger(__name__)

EMBEDDING_DIMENSION = 384


@dataclass
class EmbeddingServiceConfig:
    """Configuration for embedding service."""
    model_id: str = field(default_factory=lambda: settings.embedding_model)
    enabled: bool = field(default_factory=lambda: settings.embedding_enabled)
    dimension: int = EMBEDDING_DIMENSION
    batch_size: int = 32
    use_gpu: bool = False
    normalize: bool = True


class EmbeddingProvider(Protocol):
    def encode(self, texts: Sequence[str]) -> Sequence[Sequence[float]]:
        ...


class SentenceTransformerProvider:
    """Adapter around a loaded sentence-transformers model."""

    def __init__(self, model, config: EmbeddingServiceConfig):
        self._model = model
        self._config = config

    def encode(self, texts: Sequence[str]) -> Sequence[Sequence[float]]:
        vectors = self._model.encode(
            list(texts),
            batch_size=self._config.batch_size,
            convert_to_numpy=True,
            normalize_embeddings=self._config.normalize,
        )
        return vectors.tolist()


def fallback_vector(text: str, dimension: int = EMBEDDING_DIMENSION) -> List[float]:
    seed = sum(ord(c) for c in text)
    vector = []
    for i in range(dimension):
        x = math.sin(seed + i) * 10000
        vector.append(x - math.floor(x))
    return vector


def node_text(attributes: Mapping[str, object]) -> str:
    """Text a node is embedded from (canonical attribute dict)."""
    return (
        f"Label: {attributes.get('label')}. "
        f"Type: {attributes.get('category')}. "
        f"Jurisdiction: {attributes.get('jurisdiction')}. "
        f"Secrecy Level: {attributes.get('secrecy_level')}."
    )


class EmbeddingService:
    """
    Text -> vector collaborator with transparent fallback.

    A provider may be injected (tests use a fake one); otherwise the
    sentence-transformers model named in the config is loaded lazily.
    """

    def __init__(
        self,
        config: Optional[EmbeddingServiceConfig] = None,
        provider: Optional[EmbeddingProvider] = None,
    ):
        self._config = config or EmbeddingServiceConfig()
        self._provider = provider
        self._load_attempted = provider is not None

    @property
    def config(self) -> EmbeddingServiceConfig:
        return self._config

    def _ensure_provider(self) -> Optional[EmbeddingProvider]:
        """Lazy load the embedding model."""
        if self._load_attempted:
            return self._provider
        self._load_attempted = True
        if not self._config.enabled:
            logger.info("embedding_model_disabled", model=self._config.model_id)
            return None

        try:
            from sentence_transformers import SentenceTransformer
        except ImportError:
            logger.warning("embedding_fallback", reason="sentence-transformers not installed")
            return None

        try:
            model = SentenceTransformer(
                self._config.model_id,
                device="cuda" if self._config.use_gpu else "cpu",
            )
        except (OSError, RuntimeError, ValueError) as exc:
            logger.warning("embedding_fallback", reason=f"model load failed: {exc}")
            return None

        self._provider = SentenceTransformerProvider(model, self._config)
        logger.info("embedding_model_loaded", model=self._config.model_id)
        return self._provider

    @property
    def using_fallback(self) -> bool:
        return self._ensure_provider() is None

    def embed_many(self, texts: Sequence[str]) -> List[List[float]]:
        provider = self._ensure_provider()
        if provider is None:
            return [fallback_vector(text, self._config.dimension) for text in texts]
        return [[float(v) for v in vector] for vector in provider.encode(texts)]

    def embed(self, text: str) -> List[float]:
        return self.embed_many([text])[0]


def embed_nodes(snapshot: GraphSnapshot, service: Optional[EmbeddingService] = None) -> Dict[str, List[float]]:
    """Embedding vector for every node in the snapshot."""
    service = service or EmbeddingService()
    keys, texts = [], []
    for key, attributes in snapshot.node_items():
        keys.append(key)
        texts.append(node_text(attributes))
    if not keys:
        return {}
    vectors = service.embed_many(texts)
    logger.debug("nodes_embedded", nodes=len(keys), fallback=service.using_fallback)
    return dict(zip(keys, vectors))


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity; 0.0 when either vector has zero norm."""
    va, vb = np.asarray(a, dtype=float), np.asarray(b, dtype=float)
    norm = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if norm == 0:
        return 0.0
    return float(np.dot(va, vb) / norm)


@dataclass(frozen=True)
class SearchHit:
    key: str
    score: float
    label: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        return {"key": self.key, "score": self.score, "label": self.label}


def semantic_search(
    snapshot: GraphSnapshot,
    query_vector: Sequence[float],
    top_k: int = 10,
    vector_field: str = "embedding",
) -> List[SearchHit]:
    """
    Rank nodes by cosine similarity to the query, highest first.

    Nodes without a vector are skipped; vectors whose dimension differs
    from the query are skipped with a warning. Ties keep snapshot order.
    """
    if top_k <= 0:
        return []
    query = np.asarray(query_vector, dtype=float)
    hits: List[SearchHit] = []
    mismatched = 0
    for key, attributes in snapshot.node_items():
        vector = attributes.get(vector_field)
        if vector is None:
            continue
        if len(vector) != len(query):
            mismatched += 1
            continue
        hits.append(SearchHit(key, cosine_similarity(query, vector), attributes.get("label")))
    if mismatched:
        logger.warning(
            "embedding_dimension_mismatch",
            skipped=mismatched,
            expected=len(query),
            field=vector_field,
        )
    hits.sort(key=lambda hit: -hit.score)
    return hits[:top_k]

"""
signet: temporal signed-graph analytics

LAYER STRUCTURE:
================

1. CONTRACTS (contracts/)
   - Closed node/edge schema, provenance, error codes and exceptions

2. STORAGE (store/)
   - GraphStore: canonical in-memory multigraph, single source of truth
   - GraphHistory: undo/redo checkpoints

3. INGESTION (ingestion/)
   - Loose documents -> canonical graph (deterministic, seeded)
   - Canonical export/import, suggested operations

4. TEMPORAL (temporal/)
   - Year and jurisdiction visibility; never modifies topology

5. ANALYTICS (analytics/)
   - Layout, communities, centrality, structural balance, embeddings,
     representation learning, statistics. Stateless, snapshot-in.

6. OFFLOAD (offload/)
   - Isolated execution, single-flight, ordered atomic merge,
     stale-generation discard

GraphSession (session.py) wires the layers together.
"""

from .session import GraphSession

__version__ = "0.1.0"

__all__ = ["GraphSession", "__version__"]

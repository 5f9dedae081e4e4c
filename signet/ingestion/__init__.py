"""
Ingestion Layer

RESPONSIBILITY: Turn external documents into a canonical GraphStore
ALLOWED INPUTS: Loose documents, canonical exports, suggested operations
OUTPUTS: GraphStore + HydrationReport / ApplyReport

WHAT THIS LAYER MUST NOT DO:
============================
- Run analytics or write derived attributes (layout, communities...)
- Abort a load because of a single malformed record
- Depend on wall-clock randomness (layouts are seeded)
"""

from .hydrator import Hydrator, HydratorConfig, initial_position
from .loader import load_document, load_file, parse_document
from .operations import ApplyReport, apply_suggested_operations, extraction_to_operations
from .report import HydrationReport, RecordDefect
from .seeds import GLOBAL_SEED, SeededRandom
from .serialization import (
    CANONICAL_FORMAT,
    CANONICAL_VERSION,
    CanonicalEncoder,
    dumps,
    export_document,
    import_canonical,
    is_canonical,
    loads,
)

__all__ = [
    "Hydrator",
    "HydratorConfig",
    "initial_position",
    "load_document",
    "load_file",
    "parse_document",
    "ApplyReport",
    "apply_suggested_operations",
    "extraction_to_operations",
    "HydrationReport",
    "RecordDefect",
    "GLOBAL_SEED",
    "SeededRandom",
    "CANONICAL_FORMAT",
    "CANONICAL_VERSION",
    "CanonicalEncoder",
    "dumps",
    "export_document",
    "import_canonical",
    "is_canonical",
    "loads",
]

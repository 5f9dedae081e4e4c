"""
Canonical Serialization
=======================

Lossless document form of a GraphStore:

    {
        "format": "signet.canonical",
        "version": 1,
        "attributes": {...},
        "nodes": [{"key": ..., "attributes": {...}}],
        "edges": [{"key": ..., "source": ..., "target": ..., "attributes": {...}}]
    }

export_document() followed by import_canonical() reproduces the same
keys, endpoints and attribute values, including unknown fields.
"""

from __future__ import annotations
from dataclasses import asdict
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Mapping, Tuple
import json

import numpy as np

from ..contracts.base import ErrorCode, GraphIntegrityError, IngestionError
from ..contracts.graph import EdgeAttributes, NodeAttributes
from ..observability.logging import get_logger
from ..store.graph_store import GraphStore
from .report import HydrationReport, RecordDefect

logger = get_logger(__name__)

CANONICAL_FORMAT = "signet.canonical"
CANONICAL_VERSION = 1


class CanonicalEncoder(json.JSONEncoder):
    """
    JSON encoder for graph documents.

    RULES:
    1. Enums use their .value
    2. numpy scalars and arrays become plain numbers and lists
    3. Sets become sorted lists (determinism)
    4. Contract objects use their to_dict()
    """

    def default(self, obj: Any) -> Any:
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        if isinstance(obj, (set, frozenset)):
            return sorted(obj)
        if hasattr(obj, "to_dict"):
            return obj.to_dict()
        if hasattr(obj, "__dataclass_fields__"):
            return asdict(obj)
        return super().default(obj)


def is_canonical(document: Mapping[str, Any]) -> bool:
    """
    True when the document is in canonical form.

    Either the format marker is present, or the first node record
    already has the {key, attributes} shape.
    """
    if document.get("format") == CANONICAL_FORMAT:
        return True
    nodes = document.get("nodes")
    if isinstance(nodes, list) and nodes and isinstance(nodes[0], Mapping):
        return "key" in nodes[0] and isinstance(nodes[0].get("attributes"), Mapping)
    return False


def export_document(store: GraphStore) -> Dict[str, Any]:
    return {
        "format": CANONICAL_FORMAT,
        "version": CANONICAL_VERSION,
        "attributes": store.attributes,
        "nodes": [
            {"key": key, "attributes": attrs.to_dict()}
            for key, attrs in store.nodes()
        ],
        "edges": [
            {
                "key": edge.key,
                "source": edge.source,
                "target": edge.target,
                "attributes": edge.attributes.to_dict(),
            }
            for edge in store.edges()
        ],
    }


def import_canonical(document: Mapping[str, Any]) -> Tuple[GraphStore, HydrationReport]:
    """
    Rebuild a GraphStore from a canonical document.

    Individual bad records are skipped and reported; a document that is
    not a mapping, or whose version is newer than this reader, raises.
    """
    if not isinstance(document, Mapping):
        raise IngestionError("Canonical document must be a mapping", ErrorCode.MALFORMED_DOCUMENT)
    version = document.get("version", CANONICAL_VERSION)
    if not isinstance(version, int) or version > CANONICAL_VERSION:
        raise IngestionError(
            f"Unsupported canonical version: {version!r}", ErrorCode.UNSUPPORTED_DOCUMENT
        )
    nodes = document.get("nodes") or []
    edges = document.get("edges") or []
    if not isinstance(nodes, list) or not isinstance(edges, list):
        raise IngestionError("Canonical nodes and edges must be lists", ErrorCode.MALFORMED_DOCUMENT)

    store = GraphStore(document.get("attributes") or {})
    report = HydrationReport(source_shape="canonical")

    for index, record in enumerate(nodes):
        key = record.get("key") if isinstance(record, Mapping) else None
        try:
            if not isinstance(key, str) or not key:
                raise GraphIntegrityError("missing or invalid key", ErrorCode.MISSING_IDENTITY)
            store.add_node(key, NodeAttributes.from_dict(record.get("attributes") or {}))
        except GraphIntegrityError as exc:
            _skip(report, "node", index, exc.code, str(exc), key)
            continue
        except (ValueError, TypeError, KeyError) as exc:
            _skip(report, "node", index, ErrorCode.INVALID_RECORD, str(exc), key)
            continue
        report.nodes_added += 1

    for index, record in enumerate(edges):
        if not isinstance(record, Mapping):
            _skip(report, "edge", index, ErrorCode.INVALID_RECORD, "record is not a mapping")
            continue
        key = record.get("key") or f"e_{index}"
        try:
            attributes = EdgeAttributes.from_dict(record.get("attributes") or {})
            store.add_edge(key, record.get("source"), record.get("target"), attributes)
        except GraphIntegrityError as exc:
            _skip(report, "edge", index, exc.code, str(exc), key)
            continue
        except (ValueError, TypeError, KeyError) as exc:
            _skip(report, "edge", index, ErrorCode.INVALID_RECORD, str(exc), key)
            continue
        report.edges_added += 1

    logger.info(
        "canonical_imported",
        nodes=report.nodes_added,
        edges=report.edges_added,
        skipped=report.skipped,
    )
    return store, report


def _skip(report: HydrationReport, record_type: str, index: int, code: ErrorCode, message: str, key=None) -> None:
    report.defects.append(RecordDefect(record_type, index, code, message, key))
    logger.warning(f"{record_type}_skipped", index=index, key=key, code=code.name, reason=message)


def dumps(store: GraphStore, indent: int = 2) -> str:
    return json.dumps(export_document(store), cls=CanonicalEncoder, indent=indent, ensure_ascii=False)


def loads(text: str) -> GraphStore:
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise IngestionError(f"Invalid JSON: {exc}", ErrorCode.MALFORMED_DOCUMENT) from exc
    store, _ = import_canonical(document)
    return store

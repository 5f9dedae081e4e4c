"""
Hydrator
========

Converts loosely-structured documents into a canonical GraphStore.

INPUT SHAPE (all fields optional):
==================================
    {
        "metadata": {...},
        "nodes": [{"id"|"key", "label", "type"|"category", "dates", ...}],
        "edges": [{"source", "target", "relationship", "dates", ...}],
        "myths": [{"id", "title", "claim", "truth", "relatedNodes": [...]}],
        "timeline": [...], "sources": [...]
    }

GUARANTEES:
===========
1. Deterministic: the same document always yields the same graph,
   including initial positions (fresh seeded generator per run)
2. Only well-formed entities enter the graph; a malformed record is
   skipped with a logged warning and listed in the HydrationReport
3. A malformed top-level document raises IngestionError
4. Every created entity carries a provenance record for the source
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple
import math

from ..contracts.base import ErrorCode, GraphIntegrityError, IngestionError
from ..contracts.graph import (
    EDGE_ATTRIBUTE_KEYS,
    NODE_ATTRIBUTE_KEYS,
    DateRange,
    EdgeAttributes,
    Jurisdiction,
    NodeAttributes,
    NodeCategory,
    Provenance,
    ProvenanceMethod,
    SourceClassification,
    Stance,
    now_millis,
)
from ..observability.logging import get_logger
from ..settings import settings
from ..store.graph_store import GraphStore
from .report import HydrationReport, RecordDefect
from .rules import (
    default_node_size,
    edge_color,
    infer_jurisdiction,
    infer_sign,
    map_category,
    node_color,
    parse_date_range,
)
from .seeds import GLOBAL_SEED, SeededRandom

logger = get_logger(__name__)


KNOWN_NODE_FIELDS = frozenset({
    "id", "key", "label", "title", "type", "category", "description",
    "jurisdiction", "valid_time", "dates", "financial_weight",
    "secrecy_level", "x", "y", "color", "size", "provenance",
}) | NODE_ATTRIBUTE_KEYS

KNOWN_EDGE_FIELDS = frozenset({
    "key", "source", "target", "attributes", "relationship",
    "relationshipType", "type", "label", "sign", "weight", "dates",
    "valid_time", "stance", "is_hypothetical", "descriptionText",
    "color", "provenance",
}) | EDGE_ATTRIBUTE_KEYS

GRAPH_ATTRIBUTE_FIELDS = ("metadata", "timeline", "sources", "myths")

MYTH_WINDOW = "1890-1945"
MYTH_COLOR = "#7b2cbf"
MYTH_RELATIONSHIP = "concerns"


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass
class HydratorConfig:
    """Configuration for document hydration."""
    source_name: str = field(default_factory=lambda: settings.ingestion_source)
    seed: int = GLOBAL_SEED
    base_radius: float = 30.0
    ring_step: float = 5.0
    jitter: float = 2.0
    myth_radius: float = 45.0
    myth_size: float = 25.0
    myth_edge_weight: int = 2


def initial_position(node_id: str, rng: SeededRandom, config: HydratorConfig) -> Tuple[float, float]:
    """
    Deterministic starting position.

    The character sum of the id picks an angle and one of three rings;
    the seeded generator adds a small jitter.
    """
    char_sum = sum(ord(c) for c in node_id)
    angle = (char_sum % 360) / 360.0 * 2 * math.pi
    radius = config.base_radius + (char_sum % 3) * config.ring_step
    x = radius * math.cos(angle) + rng.range(-config.jitter, config.jitter)
    y = radius * math.sin(angle) + rng.range(-config.jitter, config.jitter)
    return x, y


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _as_list(document: Mapping[str, Any], name: str) -> List[Any]:
    value = document.get(name)
    if value is None:
        return []
    if not isinstance(value, list):
        raise IngestionError(
            f"Document field {name!r} must be a list, got {type(value).__name__}",
            ErrorCode.MALFORMED_DOCUMENT,
        )
    return value


# =============================================================================
# HYDRATOR
# =============================================================================

class Hydrator:
    """
    Builds a fresh GraphStore from a loose document.

    One Hydrator may be reused; every call to hydrate() starts from a
    new generator state so results never depend on call history.
    """

    def __init__(
        self,
        config: Optional[HydratorConfig] = None,
        clock: Optional[Callable[[], int]] = None,
    ):
        self._config = config or HydratorConfig()
        self._clock = clock or now_millis

    def hydrate(self, document: Mapping[str, Any]) -> Tuple[GraphStore, HydrationReport]:
        if not isinstance(document, Mapping):
            raise IngestionError(
                f"Document must be a mapping, got {type(document).__name__}",
                ErrorCode.MALFORMED_DOCUMENT,
            )
        nodes = _as_list(document, "nodes")
        edges = _as_list(document, "edges")
        myths = _as_list(document, "myths")

        store = GraphStore()
        report = HydrationReport(source_shape="loose")
        rng = SeededRandom(self._config.seed)
        timestamp = self._clock()

        for index, record in enumerate(nodes):
            self._ingest_node(store, report, index, record, rng, timestamp)
        for index, record in enumerate(edges):
            self._ingest_edge(store, report, index, record, timestamp)
        for index, record in enumerate(myths):
            self._ingest_myth(store, report, index, record, len(myths), timestamp)

        for name in GRAPH_ATTRIBUTE_FIELDS:
            if document.get(name) is not None:
                store.set_attribute(name, document[name])

        logger.info(
            "document_hydrated",
            source=self._config.source_name,
            nodes=report.nodes_added,
            edges=report.edges_added,
            myths=report.myths_added,
            skipped=report.skipped,
        )
        return store, report

    # =========================================================================
    # RECORD HANDLERS
    # =========================================================================

    def _defect(
        self,
        report: HydrationReport,
        record_type: str,
        index: int,
        code: ErrorCode,
        message: str,
        key: Optional[str] = None,
    ) -> None:
        report.defects.append(RecordDefect(record_type, index, code, message, key))
        logger.warning(f"{record_type}_skipped", index=index, key=key, code=code.name, reason=message)

    def _provenance(
        self,
        timestamp: int,
        method: ProvenanceMethod = ProvenanceMethod.ARCHIVAL,
        classification: SourceClassification = SourceClassification.PRIMARY,
    ) -> Provenance:
        return Provenance(
            source=self._config.source_name,
            confidence=1.0,
            method=method,
            classification=classification,
            timestamp=timestamp,
        )

    def _ingest_node(
        self,
        store: GraphStore,
        report: HydrationReport,
        index: int,
        record: Any,
        rng: SeededRandom,
        timestamp: int,
    ) -> None:
        if not isinstance(record, Mapping):
            self._defect(report, "node", index, ErrorCode.INVALID_RECORD, "record is not a mapping")
            return
        node_id = record.get("id") or record.get("key")
        if not isinstance(node_id, str) or not node_id:
            self._defect(report, "node", index, ErrorCode.MISSING_IDENTITY, "missing or invalid id")
            return
        if store.has_node(node_id):
            self._defect(report, "node", index, ErrorCode.DUPLICATE_KEY, "duplicate node id", node_id)
            return

        # Drawn before validation so one bad record cannot shift
        # the positions of the records after it.
        position = initial_position(node_id, rng, self._config)
        try:
            attributes = self._node_attributes(node_id, record, position, timestamp)
        except (ValueError, TypeError, KeyError) as exc:
            self._defect(report, "node", index, ErrorCode.INVALID_RECORD, str(exc), node_id)
            return

        store.add_node(node_id, attributes)
        report.nodes_added += 1

    def _node_attributes(
        self,
        node_id: str,
        record: Mapping[str, Any],
        position: Tuple[float, float],
        timestamp: int,
    ) -> NodeAttributes:
        label = record.get("label") or record.get("title") or node_id
        category = map_category(record.get("type") or record.get("category"))

        jurisdiction_value = record.get("jurisdiction")
        if jurisdiction_value in {j.value for j in Jurisdiction}:
            jurisdiction = Jurisdiction(jurisdiction_value)
        else:
            jurisdiction = infer_jurisdiction(node_id, label)

        valid_time = record.get("valid_time")
        if isinstance(valid_time, Mapping):
            date_range = DateRange.from_dict(valid_time)
        else:
            date_range = parse_date_range(record.get("dates"))

        financial_weight = float(record.get("financial_weight", 0.5))
        x, y = position
        if _is_number(record.get("x")) and _is_number(record.get("y")):
            x, y = float(record["x"]), float(record["y"])

        provenance = [self._provenance(timestamp)]
        provenance.extend(Provenance.from_dict(p) for p in record.get("provenance") or [])

        return NodeAttributes(
            label=str(label),
            category=category,
            description=str(record.get("description") or ""),
            jurisdiction=jurisdiction,
            valid_time=date_range,
            x=x,
            y=y,
            size=record.get("size") or default_node_size(financial_weight),
            color=record.get("color") or node_color(category),
            financial_weight=financial_weight,
            secrecy_level=int(record.get("secrecy_level", 1)),
            provenance=provenance,
            extra={k: v for k, v in record.items() if k not in KNOWN_NODE_FIELDS},
        )

    def _ingest_edge(
        self,
        store: GraphStore,
        report: HydrationReport,
        index: int,
        record: Any,
        timestamp: int,
    ) -> None:
        if not isinstance(record, Mapping):
            self._defect(report, "edge", index, ErrorCode.INVALID_RECORD, "record is not a mapping")
            return
        key = record.get("key") or f"e_{index}"
        source, target = record.get("source"), record.get("target")
        if not (isinstance(source, str) and store.has_node(source)
                and isinstance(target, str) and store.has_node(target)):
            self._defect(
                report, "edge", index, ErrorCode.DANGLING_ENDPOINT,
                f"source ({source}) or target ({target}) does not exist", key,
            )
            return
        if store.has_edge(key):
            self._defect(report, "edge", index, ErrorCode.DUPLICATE_KEY, "duplicate edge key", key)
            return

        body = record.get("attributes")
        if not isinstance(body, Mapping):
            body = record
        try:
            attributes = self._edge_attributes(body, timestamp)
        except (ValueError, TypeError, KeyError) as exc:
            self._defect(report, "edge", index, ErrorCode.INVALID_RECORD, str(exc), key)
            return

        store.add_edge(key, source, target, attributes)
        report.edges_added += 1

    def _edge_attributes(self, body: Mapping[str, Any], timestamp: int) -> EdgeAttributes:
        relationship = (
            body.get("relationship") or body.get("relationshipType")
            or body.get("type") or body.get("label") or "RELATED_TO"
        )
        sign = body["sign"] if "sign" in body else infer_sign(relationship)

        valid_time = body.get("valid_time")
        if isinstance(valid_time, Mapping):
            date_range = DateRange.from_dict(valid_time)
        else:
            date_range = parse_date_range(body.get("dates"))

        weight = body.get("weight", 1)
        if not _is_number(weight):
            raise ValueError(f"edge weight must be numeric: {weight!r}")

        stance = body.get("stance")
        attributes = EdgeAttributes(
            relationship_type=str(relationship),
            weight=weight,
            sign=sign,
            valid_time=date_range,
            stance=Stance(stance) if stance else None,
            is_hypothetical=bool(body.get("is_hypothetical", False)),
            description_text=body.get("descriptionText"),
            provenance=[self._provenance(timestamp)],
            extra={k: v for k, v in body.items() if k not in KNOWN_EDGE_FIELDS},
        )
        attributes.color = body.get("color") or edge_color(attributes.sign)
        return attributes

    def _ingest_myth(
        self,
        store: GraphStore,
        report: HydrationReport,
        index: int,
        record: Any,
        total: int,
        timestamp: int,
    ) -> None:
        if not isinstance(record, Mapping):
            self._defect(report, "myth", index, ErrorCode.INVALID_RECORD, "record is not a mapping")
            return
        myth_id = record.get("id")
        if not isinstance(myth_id, str) or not myth_id:
            self._defect(report, "myth", index, ErrorCode.MISSING_IDENTITY, "missing or invalid id")
            return

        provenance = self._provenance(
            timestamp, ProvenanceMethod.INFERENCE, SourceClassification.MYTH
        )
        if not store.has_node(myth_id):
            angle = (index / total) * 2 * math.pi
            claim, truth = record.get("claim"), record.get("truth")
            description = record.get("description") or ""
            if claim or truth:
                description = f"Myth: {claim or ''}\n\nTruth: {truth or ''}"
            try:
                attributes = NodeAttributes(
                    label=str(record.get("title") or record.get("label") or myth_id),
                    category=NodeCategory.MYTH,
                    description=description,
                    jurisdiction=Jurisdiction.OTHER,
                    valid_time=parse_date_range(MYTH_WINDOW),
                    x=self._config.myth_radius * math.cos(angle),
                    y=self._config.myth_radius * math.sin(angle),
                    size=self._config.myth_size,
                    color=node_color(NodeCategory.MYTH),
                    provenance=[provenance],
                )
            except (ValueError, TypeError) as exc:
                self._defect(report, "myth", index, ErrorCode.INVALID_RECORD, str(exc), myth_id)
                return
            store.add_node(myth_id, attributes)
            report.myths_added += 1

        related = record.get("relatedNodes") or record.get("related_nodes") or []
        for target in related:
            edge_key = f"edge_myth_{myth_id}_{target}"
            if not isinstance(target, str) or not store.has_node(target):
                self._defect(
                    report, "myth_edge", index, ErrorCode.DANGLING_ENDPOINT,
                    f"referenced node {target!r} does not exist", edge_key,
                )
                continue
            if store.has_edge(edge_key):
                continue
            try:
                store.add_edge(edge_key, myth_id, target, EdgeAttributes(
                    relationship_type=MYTH_RELATIONSHIP,
                    weight=self._config.myth_edge_weight,
                    sign=0,
                    valid_time=parse_date_range(MYTH_WINDOW),
                    color=MYTH_COLOR,
                    provenance=[provenance],
                ))
            except GraphIntegrityError as exc:
                self._defect(report, "myth_edge", index, exc.code, str(exc), edge_key)
                continue
            report.myth_edges_added += 1

"""
Suggested Operations
====================

Boundary for externally suggested graph changes (e.g. from a language
model). Suggestions are applied as ordinary node/edge creation, tagged
with ai_inference provenance; suggested edges are hypothetical unless
the operation says otherwise.

OPERATION SHAPE:
================
    {"type": "ADD_NODE", "nodeId": "...", "attributes": {"label", "category", "dates", ...}}
    {"type": "ADD_EDGE", "source": "...", "target": "...", "attributes": {"relationshipType", ...}}

The entity-extraction shape {"nodes": [...], "edges": [...]} is converted
with extraction_to_operations().
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..contracts.base import ErrorCode, GraphIntegrityError
from ..contracts.graph import (
    DateRange,
    EdgeAttributes,
    Jurisdiction,
    NodeAttributes,
    Provenance,
    ProvenanceMethod,
    SourceClassification,
    Stance,
    now_millis,
)
from ..observability.logging import get_logger
from ..store.graph_store import GraphStore
from .hydrator import HydratorConfig, initial_position
from .report import RecordDefect
from .rules import (
    default_node_size,
    edge_color,
    infer_jurisdiction,
    infer_sign,
    map_category,
    node_color,
    parse_date_range,
)
from .seeds import SeededRandom

logger = get_logger(__name__)

ADD_NODE = "ADD_NODE"
ADD_EDGE = "ADD_EDGE"
DEFAULT_AI_CONFIDENCE = 0.75
DEFAULT_AI_SOURCE = "AI Suggestion"


@dataclass
class ApplyReport:
    nodes_added: List[str] = field(default_factory=list)
    edges_added: List[str] = field(default_factory=list)
    defects: List[RecordDefect] = field(default_factory=list)

    @property
    def applied(self) -> int:
        return len(self.nodes_added) + len(self.edges_added)


def extraction_to_operations(extraction: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """Convert an entity-extraction result into an operation list."""
    operations: List[Dict[str, Any]] = []
    for node in extraction.get("nodes") or []:
        if not isinstance(node, Mapping):
            continue
        operations.append({
            "type": ADD_NODE,
            "nodeId": node.get("id") or node.get("key"),
            "attributes": {k: v for k, v in node.items() if k not in ("id", "key")},
        })
    for edge in extraction.get("edges") or []:
        if not isinstance(edge, Mapping):
            continue
        operations.append({
            "type": ADD_EDGE,
            "source": edge.get("source"),
            "target": edge.get("target"),
            "is_hypothetical": False,
            "attributes": {
                k: v for k, v in edge.items() if k not in ("source", "target")
            },
        })
    return operations


def _date_range(attributes: Mapping[str, Any]) -> DateRange:
    valid_time = attributes.get("valid_time")
    if isinstance(valid_time, Mapping):
        return DateRange.from_dict(valid_time)
    return parse_date_range(attributes.get("dates"))


def _node_from_operation(
    node_id: str,
    attributes: Mapping[str, Any],
    provenance: Provenance,
    rng: SeededRandom,
) -> NodeAttributes:
    label = attributes.get("label") or node_id
    category = map_category(attributes.get("category") or attributes.get("type"))
    jurisdiction_value = attributes.get("jurisdiction")
    if jurisdiction_value in {j.value for j in Jurisdiction}:
        jurisdiction = Jurisdiction(jurisdiction_value)
    else:
        jurisdiction = infer_jurisdiction(node_id, label)
    financial_weight = float(attributes.get("financial_weight", 0.5))
    x, y = initial_position(node_id, rng, HydratorConfig())
    return NodeAttributes(
        label=str(label),
        category=category,
        description=str(attributes.get("description") or ""),
        jurisdiction=jurisdiction,
        valid_time=_date_range(attributes),
        x=x,
        y=y,
        size=default_node_size(financial_weight),
        color=node_color(category),
        financial_weight=financial_weight,
        secrecy_level=int(attributes.get("secrecy_level", 1)),
        provenance=[provenance],
    )


def _edge_from_operation(
    attributes: Mapping[str, Any],
    provenance: Provenance,
    hypothetical: bool,
) -> EdgeAttributes:
    relationship = (
        attributes.get("relationshipType") or attributes.get("relationship")
        or attributes.get("label") or "RELATED_TO"
    )
    sign = attributes["sign"] if "sign" in attributes else infer_sign(relationship)
    stance = attributes.get("stance")
    return EdgeAttributes(
        relationship_type=str(relationship),
        weight=attributes.get("weight", 1),
        sign=sign,
        valid_time=_date_range(attributes),
        stance=Stance(stance) if stance else None,
        is_hypothetical=hypothetical,
        description_text=attributes.get("descriptionText"),
        color=edge_color(sign) if sign in (-1, 0, 1) and not isinstance(sign, bool) else None,
        provenance=[provenance],
    )


def _edge_key(store: GraphStore, source: str, target: str, taken: Iterable[str]) -> str:
    base = f"edge_ai_{source}_{target}"
    taken = set(taken)
    key, suffix = base, 1
    while store.has_edge(key) or key in taken:
        key = f"{base}_{suffix}"
        suffix += 1
    return key


def apply_suggested_operations(
    store: GraphStore,
    operations: Iterable[Mapping[str, Any]],
    model_tag: Optional[str] = None,
    confidence: float = DEFAULT_AI_CONFIDENCE,
    source_name: str = DEFAULT_AI_SOURCE,
) -> ApplyReport:
    """
    Apply ADD_NODE then ADD_EDGE operations to the store.

    Nodes go first so edges may reference nodes suggested in the same
    batch. Existing nodes are never overwritten; an operation that
    cannot be applied is skipped and reported.
    """
    operations = list(operations)
    report = ApplyReport()
    provenance = Provenance(
        source=source_name,
        confidence=confidence,
        method=ProvenanceMethod.INFERENCE,
        classification=SourceClassification.AI_INFERENCE,
        model_tag=model_tag,
        timestamp=now_millis(),
    )
    rng = SeededRandom()

    def skip(index: int, code: ErrorCode, message: str, key: Optional[str] = None) -> None:
        report.defects.append(RecordDefect("operation", index, code, message, key))
        logger.warning("operation_skipped", index=index, key=key, code=code.name, reason=message)

    for index, operation in enumerate(operations):
        op_type = operation.get("type") if isinstance(operation, Mapping) else None
        if op_type not in (ADD_NODE, ADD_EDGE):
            skip(index, ErrorCode.INVALID_RECORD, f"unsupported operation type {op_type!r}")
            continue
        if op_type != ADD_NODE:
            continue
        node_id = operation.get("nodeId") or operation.get("id")
        if not isinstance(node_id, str) or not node_id:
            skip(index, ErrorCode.MISSING_IDENTITY, "missing node id")
            continue
        if store.has_node(node_id):
            skip(index, ErrorCode.DUPLICATE_KEY, "node already exists", node_id)
            continue
        try:
            attributes = _node_from_operation(
                node_id, operation.get("attributes") or {}, provenance, rng
            )
        except (ValueError, TypeError, KeyError) as exc:
            skip(index, ErrorCode.INVALID_RECORD, str(exc), node_id)
            continue
        store.add_node(node_id, attributes)
        report.nodes_added.append(node_id)

    for index, operation in enumerate(operations):
        if not isinstance(operation, Mapping) or operation.get("type") != ADD_EDGE:
            continue
        source, target = operation.get("source"), operation.get("target")
        if not (isinstance(source, str) and isinstance(target, str)):
            skip(index, ErrorCode.DANGLING_ENDPOINT, "missing source or target")
            continue
        key = operation.get("key") or _edge_key(store, source, target, report.edges_added)
        try:
            attributes = _edge_from_operation(
                operation.get("attributes") or {},
                provenance,
                bool(operation.get("is_hypothetical", True)),
            )
            store.add_edge(key, source, target, attributes)
        except GraphIntegrityError as exc:
            skip(index, exc.code, str(exc), key)
            continue
        except (ValueError, TypeError, KeyError) as exc:
            skip(index, ErrorCode.INVALID_RECORD, str(exc), key)
            continue
        report.edges_added.append(key)

    logger.info(
        "suggested_operations_applied",
        model_tag=model_tag,
        nodes=len(report.nodes_added),
        edges=len(report.edges_added),
        skipped=len(report.defects),
    )
    return report

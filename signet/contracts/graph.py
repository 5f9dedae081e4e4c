"""
Graph Contracts

Closed attribute schema for nodes, edges and their provenance.

BOUNDARY ENFORCEMENT:
=====================
- Value domains (sign, confidence, secrecy level...) are checked at
  construction; a violation raises ValueError (caller bug)
- Unknown fields from imported documents are preserved in `extra`
  and never interpreted
- to_dict()/from_dict() define the canonical, lossless wire form
"""

from __future__ import annotations
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional, Tuple
from enum import Enum
import time


# =============================================================================
# VOCABULARIES
# =============================================================================

class NodeCategory(Enum):
    PERSON = "person"
    ORGANIZATION = "organization"
    EVENT = "event"
    PUBLICATION = "publication"
    LOCATION = "location"
    CONCEPT = "concept"
    MYTH = "myth"


class Jurisdiction(Enum):
    """Historical regions used to tag where an actor operated."""
    KONGRESOWKA = "Kongresowka"
    GALICJA = "Galicja"
    WIELKOPOLSKA = "Wielkopolska"
    EMIGRACJA = "Emigracja"
    OTHER = "Other"


class Stance(Enum):
    ALLIANCE = "alliance"
    HOSTILITY = "hostility"
    AMBIVALENCE = "ambivalence"
    MENTORSHIP = "mentorship"
    RIVALRY = "rivalry"
    DEPENDENCY = "dependency"
    INFLUENCE = "influence"


class ProvenanceMethod(Enum):
    ARCHIVAL = "archival"
    INFERENCE = "inference"
    INTERPOLATION = "interpolation"


class SourceClassification(Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"
    HOSTILE = "hostile"
    MYTH = "myth"
    AI_INFERENCE = "ai_inference"


VALID_SIGNS = frozenset({-1, 0, 1})

DEFAULT_START_YEAR = 1890
DEFAULT_END_YEAR = 1940


def now_millis() -> int:
    """Epoch milliseconds, the timestamp unit used by provenance records."""
    return int(time.time() * 1000)


# =============================================================================
# VALUE TYPES
# =============================================================================

@dataclass(frozen=True)
class DateRange:
    """
    Inclusive validity interval in years.

    start <= end is expected but not enforced; contains() simply
    returns False for every year when the interval is inverted.
    """
    start: int = DEFAULT_START_YEAR
    end: int = DEFAULT_END_YEAR
    granularity: Optional[str] = None
    circa: Optional[bool] = None

    def contains(self, year: int) -> bool:
        return self.start <= year <= self.end

    @property
    def is_ordered(self) -> bool:
        return self.start <= self.end

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"start": self.start, "end": self.end}
        if self.granularity is not None:
            data["granularity"] = self.granularity
        if self.circa is not None:
            data["circa"] = self.circa
        return data

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> DateRange:
        return DateRange(
            start=int(data.get("start", DEFAULT_START_YEAR)),
            end=int(data.get("end", DEFAULT_END_YEAR)),
            granularity=data.get("granularity"),
            circa=data.get("circa"),
        )


@dataclass(frozen=True)
class Provenance:
    """
    Attestation of where a fact came from.

    Records are append-only: a node or edge accumulates them, they are
    never edited in place.
    """
    source: str
    confidence: float = 1.0
    method: ProvenanceMethod = ProvenanceMethod.ARCHIVAL
    classification: SourceClassification = SourceClassification.PRIMARY
    model_tag: Optional[str] = None
    timestamp: int = field(default_factory=now_millis)
    notes: Optional[str] = None

    def __post_init__(self):
        if not self.source or not isinstance(self.source, str):
            raise ValueError("Provenance source must be a non-empty string")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Provenance confidence out of range: {self.confidence}")

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "source": self.source,
            "confidence": self.confidence,
            "method": self.method.value,
            "sourceClassification": self.classification.value,
            "timestamp": self.timestamp,
        }
        if self.model_tag is not None:
            data["model_tag"] = self.model_tag
        if self.notes is not None:
            data["notes"] = self.notes
        return data

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> Provenance:
        return Provenance(
            source=data["source"],
            confidence=float(data.get("confidence", 1.0)),
            method=ProvenanceMethod(data.get("method", "archival")),
            classification=SourceClassification(
                data.get("sourceClassification", data.get("classification", "primary"))
            ),
            model_tag=data.get("model_tag"),
            timestamp=int(data.get("timestamp", now_millis())),
            notes=data.get("notes"),
        )


def _vector(values: Optional[Any]) -> Optional[Tuple[float, ...]]:
    if values is None:
        return None
    return tuple(float(v) for v in values)


# =============================================================================
# NODE / EDGE ATTRIBUTES
# =============================================================================

@dataclass
class NodeAttributes:
    """
    Attributes of a node.

    Derived attributes (x, y, size, color, embedding, community,
    betweenness) are written only by their owning algorithm or by an
    explicit user edit.
    """
    label: str
    category: NodeCategory = NodeCategory.CONCEPT
    description: str = ""
    jurisdiction: Jurisdiction = Jurisdiction.OTHER
    valid_time: DateRange = field(default_factory=DateRange)
    x: Optional[float] = None
    y: Optional[float] = None
    size: Optional[float] = None
    color: Optional[str] = None
    financial_weight: float = 0.5
    secrecy_level: int = 1
    embedding: Optional[Tuple[float, ...]] = None
    structural_embedding: Optional[Tuple[float, ...]] = None
    community: Optional[int] = None
    betweenness: Optional[float] = None
    provenance: List[Provenance] = field(default_factory=list)
    hidden: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not isinstance(self.label, str) or not self.label:
            raise ValueError("Node label must be a non-empty string")
        if not 0.0 <= self.financial_weight <= 1.0:
            raise ValueError(f"financial_weight out of range: {self.financial_weight}")
        if isinstance(self.secrecy_level, bool) or self.secrecy_level not in range(1, 6):
            raise ValueError(f"secrecy_level must be within 1..5: {self.secrecy_level}")
        if self.community is not None and self.community < 0:
            raise ValueError(f"community id must be non-negative: {self.community}")
        if self.betweenness is not None and self.betweenness < 0:
            raise ValueError(f"betweenness must be non-negative: {self.betweenness}")
        self.embedding = _vector(self.embedding)
        self.structural_embedding = _vector(self.structural_embedding)

    @property
    def position(self) -> Optional[Tuple[float, float]]:
        if self.x is None or self.y is None:
            return None
        return (self.x, self.y)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = dict(self.extra)
        data.update({
            "label": self.label,
            "category": self.category.value,
            "description": self.description,
            "jurisdiction": self.jurisdiction.value,
            "valid_time": self.valid_time.to_dict(),
            "x": self.x,
            "y": self.y,
            "size": self.size,
            "color": self.color,
            "financial_weight": self.financial_weight,
            "secrecy_level": self.secrecy_level,
            "embedding": list(self.embedding) if self.embedding is not None else None,
            "structural_embedding": (
                list(self.structural_embedding)
                if self.structural_embedding is not None else None
            ),
            "community": self.community,
            "betweenness": self.betweenness,
            "provenance": [p.to_dict() for p in self.provenance],
            "hidden": self.hidden,
        })
        return data

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> NodeAttributes:
        known = NODE_ATTRIBUTE_KEYS
        return NodeAttributes(
            label=data["label"],
            category=NodeCategory(data.get("category", "concept")),
            description=data.get("description") or "",
            jurisdiction=Jurisdiction(data.get("jurisdiction", "Other")),
            valid_time=DateRange.from_dict(data.get("valid_time") or {}),
            x=data.get("x"),
            y=data.get("y"),
            size=data.get("size"),
            color=data.get("color"),
            financial_weight=float(data.get("financial_weight", 0.5)),
            secrecy_level=int(data.get("secrecy_level", 1)),
            embedding=data.get("embedding"),
            structural_embedding=data.get("structural_embedding"),
            community=data.get("community"),
            betweenness=data.get("betweenness"),
            provenance=[Provenance.from_dict(p) for p in data.get("provenance") or []],
            hidden=bool(data.get("hidden", False)),
            extra={k: v for k, v in data.items() if k not in known},
        )


@dataclass
class EdgeAttributes:
    """Attributes of a directed, signed edge."""
    relationship_type: str = "RELATED_TO"
    weight: int = 1
    sign: int = 0
    valid_time: DateRange = field(default_factory=DateRange)
    stance: Optional[Stance] = None
    is_hypothetical: bool = False
    description_text: Optional[str] = None
    color: Optional[str] = None
    size: Optional[float] = None
    provenance: List[Provenance] = field(default_factory=list)
    hidden: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if isinstance(self.sign, bool) or self.sign not in VALID_SIGNS:
            raise ValueError(f"Edge sign must be one of -1, 0, 1: {self.sign!r}")
        if self.weight < 0:
            raise ValueError(f"Edge weight must be non-negative: {self.weight}")

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = dict(self.extra)
        data.update({
            "relationshipType": self.relationship_type,
            "weight": self.weight,
            "sign": self.sign,
            "valid_time": self.valid_time.to_dict(),
            "stance": self.stance.value if self.stance is not None else None,
            "is_hypothetical": self.is_hypothetical,
            "descriptionText": self.description_text,
            "color": self.color,
            "size": self.size,
            "provenance": [p.to_dict() for p in self.provenance],
            "hidden": self.hidden,
        })
        return data

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> EdgeAttributes:
        known = EDGE_ATTRIBUTE_KEYS
        stance = data.get("stance")
        return EdgeAttributes(
            relationship_type=data.get("relationshipType") or "RELATED_TO",
            weight=data.get("weight", 1),
            sign=data.get("sign", 0),
            valid_time=DateRange.from_dict(data.get("valid_time") or {}),
            stance=Stance(stance) if stance is not None else None,
            is_hypothetical=bool(data.get("is_hypothetical", False)),
            description_text=data.get("descriptionText"),
            color=data.get("color"),
            size=data.get("size"),
            provenance=[Provenance.from_dict(p) for p in data.get("provenance") or []],
            hidden=bool(data.get("hidden", False)),
            extra={k: v for k, v in data.items() if k not in known},
        )


# Canonical attribute keys; anything else round-trips through `extra`.
NODE_ATTRIBUTE_KEYS = frozenset(f.name for f in fields(NodeAttributes))

EDGE_ATTRIBUTE_KEYS = frozenset({
    "relationshipType", "weight", "sign", "valid_time", "stance",
    "is_hypothetical", "descriptionText", "color", "size",
    "provenance", "hidden", "extra",
})

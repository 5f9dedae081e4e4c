"""
Inference Rules
===============

Data-driven rule tables used to normalise loose documents.

Each table is plain data (keyword tuple -> classification) so it can be
tested and swapped independently of the hydrator. All matching is
case-insensitive substring matching and is best-effort, not authoritative.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Tuple
import re

from ..contracts.graph import (
    DEFAULT_END_YEAR,
    DEFAULT_START_YEAR,
    DateRange,
    Jurisdiction,
    NodeCategory,
)


# =============================================================================
# RULE TABLES
# =============================================================================

@dataclass(frozen=True)
class KeywordRule:
    """Classification assigned when any keyword occurs in the text."""
    keywords: Tuple[str, ...]
    classification: object

    def matches(self, text: str) -> bool:
        return any(keyword in text for keyword in self.keywords)


# Checked in order; first match wins.
JURISDICTION_RULES: Tuple[KeywordRule, ...] = (
    KeywordRule(("dmowski", "poplawski", "warszawa"), Jurisdiction.KONGRESOWKA),
    KeywordRule(("pilsudski", "galicja", "lwow"), Jurisdiction.GALICJA),
    KeywordRule(("poznan", "hotel bazar", "seyda"), Jurisdiction.WIELKOPOLSKA),
    KeywordRule(("paryz", "komitet"), Jurisdiction.EMIGRACJA),
)

# Rivalry, opposition, conflict, secession and dissent stems.
NEGATIVE_RELATION_KEYWORDS: Tuple[str, ...] = (
    "rywal", "przeciw", "walka", "odłącz", "sprzeciw",
    "rival", "oppos", "conflict", "secession", "seced", "dissent",
)

CATEGORY_VOCABULARY = {
    "person": NodeCategory.PERSON,
    "organization": NodeCategory.ORGANIZATION,
    "event": NodeCategory.EVENT,
    "publication": NodeCategory.PUBLICATION,
    "concept": NodeCategory.CONCEPT,
    "myth": NodeCategory.MYTH,
}

NODE_COLORS = {
    NodeCategory.PERSON: "#2c241b",
    NodeCategory.ORGANIZATION: "#8b0000",
    NodeCategory.CONCEPT: "#1e3a5f",
    NodeCategory.EVENT: "#d4af37",
    NodeCategory.PUBLICATION: "#704214",
    NodeCategory.MYTH: "#7b2cbf",
    NodeCategory.LOCATION: "#4a6741",
}

EDGE_COLORS = {-1: "#991b1b", 1: "#3d5c45", 0: "#9ca3af"}

COMMUNITY_PALETTE: Tuple[str, ...] = (
    "#3d5c45", "#1b2d21", "#d4af37", "#991b1b", "#0f172a", "#4a6741", "#704214",
)

_RANGE_PATTERN = re.compile(r"^(\d{4})-(\d{4})$")
_YEAR_PATTERN = re.compile(r"^(\d{4})")


# =============================================================================
# INFERENCE FUNCTIONS
# =============================================================================

def parse_date_range(text: Optional[str]) -> DateRange:
    """
    Parse a free-text date field.

    "1893-1928" -> 1893..1928, "1903 (approx.)" -> 1903..1903,
    anything else -> the default window 1890..1940.
    """
    if not text or not isinstance(text, str):
        return DateRange(DEFAULT_START_YEAR, DEFAULT_END_YEAR)
    text = text.strip()

    range_match = _RANGE_PATTERN.match(text)
    if range_match:
        return DateRange(int(range_match.group(1)), int(range_match.group(2)))

    single_match = _YEAR_PATTERN.match(text)
    if single_match:
        year = int(single_match.group(1))
        return DateRange(year, year)

    return DateRange(DEFAULT_START_YEAR, DEFAULT_END_YEAR)


def map_category(type_text: Optional[str]) -> NodeCategory:
    """Closed vocabulary lookup; anything unmatched is a Location."""
    if not type_text or not isinstance(type_text, str):
        return NodeCategory.LOCATION
    return CATEGORY_VOCABULARY.get(type_text.strip().lower(), NodeCategory.LOCATION)


def infer_jurisdiction(node_id: str, label: Optional[str] = None) -> Jurisdiction:
    text = (label or node_id or "").lower()
    for rule in JURISDICTION_RULES:
        if rule.matches(text):
            return rule.classification
    return Jurisdiction.OTHER


def infer_sign(relationship: Optional[str]) -> int:
    """-1 for any negative-relation keyword, +1 otherwise."""
    text = (relationship or "").lower()
    if any(keyword in text for keyword in NEGATIVE_RELATION_KEYWORDS):
        return -1
    return 1


def node_color(category: NodeCategory) -> str:
    return NODE_COLORS.get(category, "#704214")


def edge_color(sign: int) -> str:
    return EDGE_COLORS[sign]


def community_color(community_id: int) -> str:
    return COMMUNITY_PALETTE[community_id % len(COMMUNITY_PALETTE)]


def default_node_size(financial_weight: float) -> float:
    return financial_weight * 15 + 5

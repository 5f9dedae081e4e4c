"""
Shared fixtures.

Nothing here touches the network: embedding services are always built
with enabled=False or a fake provider.
"""

import copy

import pytest

from signet.contracts.graph import DateRange, EdgeAttributes, NodeAttributes
from signet.store.graph_store import GraphStore

from tests.helpers import SAMPLE_DOCUMENT, build_store


@pytest.fixture
def sample_document():
    return copy.deepcopy(SAMPLE_DOCUMENT)


@pytest.fixture
def triangle_store():
    """X, Y, Z fully connected with signs +1, +1, -1."""
    return build_store(
        ["X", "Y", "Z"],
        [("xy", "X", "Y", 1), ("yz", "Y", "Z", 1), ("xz", "X", "Z", -1)],
    )


@pytest.fixture
def dated_store():
    store = GraphStore()
    store.add_node("a", NodeAttributes(label="A", valid_time=DateRange(1890, 1910)))
    store.add_node("b", NodeAttributes(label="B", valid_time=DateRange(1900, 1940)))
    store.add_node("c", NodeAttributes(label="C", valid_time=DateRange(1920, 1930)))
    store.add_edge("ab", "a", "b", EdgeAttributes(sign=1, valid_time=DateRange(1895, 1905)))
    store.add_edge("bc", "b", "c", EdgeAttributes(sign=-1, valid_time=DateRange(1890, 1940)))
    store.add_edge("ab_late", "a", "b", EdgeAttributes(sign=1, valid_time=DateRange(1908, 1912)))
    return store

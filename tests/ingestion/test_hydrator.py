"""
Hydration Tests
===============

Loose documents become a canonical graph: inference rules applied,
malformed records skipped and reported, output fully deterministic.
"""

import math

import pytest

from signet.analytics.snapshot import GraphSnapshot
from signet.contracts.base import ErrorCode, IngestionError
from signet.contracts.graph import (
    DateRange,
    Jurisdiction,
    NodeCategory,
    ProvenanceMethod,
    SourceClassification,
)
from signet.ingestion.hydrator import Hydrator, HydratorConfig, initial_position
from signet.ingestion.seeds import SeededRandom
from signet.ingestion.serialization import export_document
from signet.temporal.filter import apply_time_filter

from tests.helpers import FIXED_TIMESTAMP, fixed_clock


@pytest.fixture
def hydrated(sample_document):
    return Hydrator(clock=fixed_clock).hydrate(sample_document)


class TestSampleDocument:
    def test_counts(self, hydrated):
        store, report = hydrated
        assert store.number_of_nodes() == 7
        assert store.number_of_edges() == 7
        assert report.nodes_added == 6
        assert report.edges_added == 6
        assert report.myths_added == 1
        assert report.myth_edges_added == 1

    def test_defects_are_reported(self, hydrated):
        _, report = hydrated
        assert report.skipped == 3
        node_defect, = report.defects_of("node")
        assert node_defect.index == 6
        assert node_defect.code is ErrorCode.MISSING_IDENTITY
        edge_defect, = report.defects_of("edge")
        assert edge_defect.key == "e_5"
        assert edge_defect.code is ErrorCode.DANGLING_ENDPOINT
        myth_defect, = report.defects_of("myth_edge")
        assert myth_defect.key == "edge_myth_myth_jewish_conspiracy_nobody"

    def test_node_inference(self, hydrated):
        store, _ = hydrated
        dmowski = store.get_node("dmowski")
        assert dmowski.category is NodeCategory.PERSON
        assert dmowski.jurisdiction is Jurisdiction.KONGRESOWKA
        assert dmowski.valid_time == DateRange(1864, 1939)
        assert dmowski.size == pytest.approx(17.0)
        assert dmowski.secrecy_level == 2
        assert dmowski.extra == {"importance": 10}

        assert store.get_node("liga").category is NodeCategory.ORGANIZATION
        assert store.get_node("pilsudski").jurisdiction is Jurisdiction.GALICJA
        assert store.get_node("seyda").jurisdiction is Jurisdiction.WIELKOPOLSKA
        assert store.get_node("przeglad").jurisdiction is Jurisdiction.OTHER
        assert store.get_node("przeglad").valid_time == DateRange(1895, 1895)
        assert store.get_node("seyda").valid_time == DateRange(1890, 1940)

    def test_edge_inference(self, hydrated):
        store, _ = hydrated
        assert store.get_edge("e_0").attributes.sign == 1
        rivalry = store.get_edge("e_2").attributes
        assert rivalry.sign == -1
        assert rivalry.color == "#991b1b"
        explicit = store.get_edge("explicit")
        assert explicit.attributes.sign == 0
        assert (explicit.source, explicit.target) == ("seyda", "dmowski")

    def test_myth_node_and_edge(self, hydrated):
        store, _ = hydrated
        myth = store.get_node("myth_jewish_conspiracy")
        assert myth.category is NodeCategory.MYTH
        assert myth.description == "Myth: A claim\n\nTruth: The truth"
        assert myth.position == pytest.approx((45.0, 0.0))
        assert myth.provenance[0].classification is SourceClassification.MYTH
        assert myth.provenance[0].method is ProvenanceMethod.INFERENCE

        edge = store.get_edge("edge_myth_myth_jewish_conspiracy_dmowski")
        assert edge.attributes.sign == 0
        assert edge.attributes.weight == 2
        assert edge.target == "dmowski"

    def test_graph_attributes(self, hydrated):
        store, _ = hydrated
        assert store.get_attribute("metadata")["title"] == "National Democracy network"
        assert store.get_attribute("timeline")[0]["year"] == 1893
        assert len(store.get_attribute("myths")) == 1

    def test_every_entity_has_provenance(self, hydrated):
        store, _ = hydrated
        for _, attrs in store.nodes():
            assert attrs.provenance
            assert attrs.provenance[0].timestamp == FIXED_TIMESTAMP
        for edge in store.edges():
            assert edge.attributes.provenance

    def test_every_node_has_position(self, hydrated):
        store, _ = hydrated
        for _, attrs in store.nodes():
            assert attrs.position is not None


class TestDeterminism:
    def test_same_document_same_graph(self, sample_document):
        hydrator = Hydrator(clock=fixed_clock)
        first, _ = hydrator.hydrate(sample_document)
        second, _ = hydrator.hydrate(sample_document)
        assert export_document(first) == export_document(second)

    def test_positions_match_seeded_sequence(self):
        document = {"nodes": [{"id": "a", "label": "A"}, {"id": "b", "label": "B"}]}
        store, _ = Hydrator(clock=fixed_clock).hydrate(document)

        rng = SeededRandom(1893)
        config = HydratorConfig()
        assert store.get_node("a").position == initial_position("a", rng, config)
        assert store.get_node("b").position == initial_position("b", rng, config)

    def test_invalid_record_does_not_shift_later_positions(self):
        clean = {"nodes": [{"id": "a"}, {"id": "b"}]}
        noisy = {"nodes": [{"id": "a", "secrecy_level": 99}, {"id": "b"}]}
        hydrator = Hydrator(clock=fixed_clock)
        assert (hydrator.hydrate(clean)[0].get_node("b").position
                == hydrator.hydrate(noisy)[0].get_node("b").position)

    def test_initial_position_ring(self):
        # "a" = 97: angle 97 degrees, ring 30 + (97 % 3) * 5 = 35
        x, y = initial_position("a", SeededRandom(), HydratorConfig(jitter=0.0))
        assert math.hypot(x, y) == pytest.approx(35.0)


class TestExplicitValues:
    def test_explicit_position_kept(self):
        store, _ = Hydrator().hydrate({"nodes": [{"id": "a", "x": 3, "y": -4}]})
        assert store.get_node("a").position == (3.0, -4.0)

    def test_explicit_jurisdiction_and_valid_time(self):
        store, _ = Hydrator().hydrate({"nodes": [{
            "id": "dmowski", "jurisdiction": "Emigracja",
            "valid_time": {"start": 1915, "end": 1919}, "dates": "1864-1939",
        }]})
        attrs = store.get_node("dmowski")
        assert attrs.jurisdiction is Jurisdiction.EMIGRACJA
        assert attrs.valid_time == DateRange(1915, 1919)

    def test_invalid_explicit_jurisdiction_is_inferred(self):
        store, _ = Hydrator().hydrate({"nodes": [{"id": "dmowski", "jurisdiction": "Mars"}]})
        assert store.get_node("dmowski").jurisdiction is Jurisdiction.KONGRESOWKA

    def test_label_defaults_to_id(self):
        store, _ = Hydrator().hydrate({"nodes": [{"id": "anon"}]})
        assert store.get_node("anon").label == "anon"

    def test_edge_attribute_body(self):
        store, _ = Hydrator().hydrate({
            "nodes": [{"id": "a"}, {"id": "b"}],
            "edges": [{"key": "k", "source": "a", "target": "b",
                       "attributes": {"relationshipType": "opposed", "weight": 3}}],
        })
        attrs = store.get_edge("k").attributes
        assert attrs.sign == -1
        assert attrs.weight == 3

    def test_derived_field_names_are_not_kept_as_extra(self):
        store, _ = Hydrator().hydrate({
            "nodes": [
                {"id": "a", "dates": "1890-1940", "hidden": True, "community": 7,
                 "betweenness": 0.4, "embedding": [1.0], "importance": 2},
                {"id": "b"},
            ],
            "edges": [{"key": "ab", "source": "a", "target": "b", "hidden": True, "size": 9}],
        })
        assert store.get_node("a").extra == {"importance": 2}
        assert store.get_node("a").community is None
        assert store.get_edge("ab").attributes.extra == {}

    def test_export_matches_store_after_filtering(self):
        store, _ = Hydrator().hydrate({
            "nodes": [{"id": "a", "dates": "1890-1940", "hidden": True, "community": 7}],
        })
        apply_time_filter(store, 1900)

        exported = export_document(store)["nodes"][0]["attributes"]
        assert exported["hidden"] is False
        assert exported["community"] is None
        assert GraphSnapshot.from_store(store, visible_only=True).node_keys == ["a"]


class TestRecordDefects:
    def test_invalid_sign_skips_edge(self):
        store, report = Hydrator().hydrate({
            "nodes": [{"id": "a"}, {"id": "b"}],
            "edges": [{"source": "a", "target": "b", "sign": 5}],
        })
        assert store.number_of_edges() == 0
        assert report.defects[0].code is ErrorCode.INVALID_RECORD

    def test_duplicate_node_skipped(self):
        store, report = Hydrator().hydrate({"nodes": [{"id": "a", "label": "first"}, {"id": "a"}]})
        assert store.get_node("a").label == "first"
        assert report.defects[0].code is ErrorCode.DUPLICATE_KEY

    def test_non_mapping_record(self):
        _, report = Hydrator().hydrate({"nodes": ["just a string"]})
        assert report.defects[0].code is ErrorCode.INVALID_RECORD

    def test_empty_document(self):
        store, report = Hydrator().hydrate({})
        assert store.number_of_nodes() == 0
        assert report.skipped == 0


class TestMalformedDocuments:
    def test_not_a_mapping(self):
        with pytest.raises(IngestionError) as exc:
            Hydrator().hydrate(["nodes"])
        assert exc.value.code is ErrorCode.MALFORMED_DOCUMENT

    def test_nodes_not_a_list(self):
        with pytest.raises(IngestionError):
            Hydrator().hydrate({"nodes": {"a": {}}})

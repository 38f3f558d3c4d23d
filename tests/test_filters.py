"""Unit tests for entity normalization, noise filtering and deduplication."""

import pytest

from herbrag.extractors.filters import (
    build_entity_id_map,
    deduplicate_entities,
    deduplicate_relations,
    entity_key,
    filter_entity,
    filter_relations_by_entities,
    normalize_entity_name,
    resolve_entity_id,
)
from herbrag.models import Entity, GraphEntity, Relation


def test_normalize_entity_name():
    assert normalize_entity_name("  Ginger (Root).  ") == "ginger root"
    assert normalize_entity_name("Zingiber   officinale") == "zingiber officinale"
    assert normalize_entity_name("[Curcumin]") == "curcumin"


@pytest.mark.parametrize("name", [
    "Ginger (Root).",
    "a ( b",
    "x..",
    "Zingiber officinale [rhizome] . ",
    "  (  ) ",
    "",
    "Temu.lawak",
])
def test_normalize_entity_name_is_idempotent(name):
    once = normalize_entity_name(name)
    assert normalize_entity_name(once) == once


def test_entity_key():
    assert entity_key("Ginger.", "PLANT") == "ginger|plant"


@pytest.mark.parametrize("name,entity_type,expected", [
    ("ginger", "PLANT", True),
    ("headache", "SYMPTOM", True),
    ("diabetes", "disease", True),
    ("ab", "PLANT", False),
    ("temperature", "COMPOUND", False),
    ("Statistical Analysis", "METHOD", False),
    ("30 minutes", "DOSAGE", False),
    ("500mg", "DOSAGE", False),
    ("measure", "METHOD", False),
    ("500 mg twice daily", "DOSAGE", True),
    ("oral administration", "METHOD", True),
    ("anti-inflammatory", "EFFECT", True),
    ("curcumin", "COMPOUND", True),
    ("cox inhibition", "MECHANISM", False),
    ("inhibition of cox-2 enzyme", "MECHANISM", True),
    ("hplc assay", "METHOD", False),
    ("traditional healer", "PERSON", True),
])
def test_filter_entity(name, entity_type, expected):
    assert filter_entity(Entity(name=name, type=entity_type)) is expected


def test_deduplicate_entities():
    entities = [
        Entity(name="Ginger", type="plant"),
        Entity(name="ginger.", type="PLANT"),
        Entity(name="ginger", type="COMPOUND"),
    ]
    unique = deduplicate_entities(entities)
    assert unique == [
        Entity(name="Ginger", type="PLANT"),
        Entity(name="ginger", type="COMPOUND"),
    ]
    keys = [entity_key(e.name, e.type) for e in unique]
    assert len(keys) == len(set(keys))


def test_filter_relations_by_entities():
    entities = [Entity(name="Ginger", type="PLANT"), Entity(name="Nausea", type="SYMPTOM")]
    relations = [
        Relation(source="ginger", relation="treats", target="nausea."),
        Relation(source="ginger", relation="treats", target="fever"),
        Relation(source="ginger", relation="", target="nausea"),
    ]
    assert filter_relations_by_entities(relations, entities) == [relations[0]]


def test_deduplicate_relations_is_literal():
    relations = [
        Relation(source="ginger", relation="treats", target="nausea"),
        Relation(source="ginger", relation="treats", target="nausea"),
        Relation(source="Ginger", relation="treats", target="nausea"),
    ]
    assert deduplicate_relations(relations) == [relations[0], relations[2]]


def test_resolve_entity_id():
    id_map = build_entity_id_map([
        GraphEntity(id="e1", name="Ginger", type="PLANT"),
        GraphEntity(id="e2", name="Ginger", type="COMPOUND"),
        GraphEntity(id="e3", name="Nausea", type="symptom"),
    ])
    assert id_map["nausea|symptom"] == "e3"
    assert resolve_entity_id("ginger", "COMPOUND", id_map) == "e2"
    # Unknown type falls back to a name-only match
    assert resolve_entity_id("Nausea.", "DISEASE", id_map) == "e3"
    assert resolve_entity_id("fever", "SYMPTOM", id_map) is None


def test_deduplicate_relations_does_not_confuse_separators():
    relations = [
        Relation(source="a|b", relation="c", target="d"),
        Relation(source="a", relation="b|c", target="d"),
    ]
    assert deduplicate_relations(relations) == relations

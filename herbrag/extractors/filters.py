"""
Normalization, noise filtering and deduplication of extracted entities and relations.

The filter rules are tuned for "what herb treats condition X" questions:
plants, conditions and dosages are always kept, lab and statistics noise
is dropped, and unrecognised types fall through to being kept.
"""
from typing import Dict, Iterable, List, Optional
import re

from ..models import Entity, Relation, GraphEntity

# Generic experimental/research terms
NOISE_TERMS = frozenset([
    "temperature", "time", "conditions", "controlled conditions",
    "daily cycle", "experiment", "study", "research", "analysis",
    "test", "result", "data", "group", "control", "sample",
    "procedure", "process", "measurement", "observation",
    "material", "equipment", "apparatus", "device", "instrument",
    "software", "program", "tool", "technique", "protocol",
    "standard", "reference", "baseline", "comparison",
    "preparation", "solution", "mixture", "suspension",
    "chromatography", "spectroscopy", "microscopy",
    "incubation", "centrifugation", "filtration", "dilution",
    "room temperature", "ambient temperature", "dark conditions",
    "statistical analysis", "significance", "p-value", "correlation",
])

_BARE_MEASUREMENT = re.compile(
    r"^\d+[\s°]*(minutes?|hours?|days?|weeks?|months?|°c|ml|mg|g|kg|µg|nm|rpm)$",
    re.IGNORECASE,
)
_LAB_VERB = re.compile(
    r"^(perform|conduct|carry out|measure|observe|record|collect|obtain|prepare|store)$",
    re.IGNORECASE,
)

ALWAYS_KEPT_TYPES = ("plant", "disease", "symptom")
THERAPEUTIC_METHOD_TERMS = (
    "dose", "administration", "infusion", "decoction",
    "extract", "preparation", "oral", "topical",
)
THERAPEUTIC_EFFECT_TERMS = ("anti", "activity", "therapeutic", "medicinal")
EXPERIMENTAL_METHOD_TERMS = (
    "chromatography", "spectroscopy", "analysis",
    "assay", "measurement", "detection",
)
MIN_NAME_LENGTH = 3
MIN_COMPOUND_LENGTH = 5
MIN_MECHANISM_LENGTH = 15


def normalize_entity_name(name: str) -> str:
    """Lowercase, drop brackets, collapse whitespace, trim and drop trailing periods."""
    normalized = re.sub(r"[()\[\]]", "", name.lower())
    normalized = re.sub(r"\s+", " ", normalized).strip()
    # Brackets go first so the result is stable under a second pass
    return re.sub(r"[\s.]+$", "", normalized)


def entity_key(name: str, entity_type: str) -> str:
    return f"{normalize_entity_name(name)}|{entity_type.lower()}"


def filter_entity(entity: Entity) -> bool:
    """
    Decide whether an extracted entity is worth keeping.

    Rules are checked in order and the first one that applies decides.

    Args:
        entity: Entity as returned by the LLM

    Returns:
        True to keep the entity, False to drop it as noise
    """
    name = entity.name.lower()
    entity_type = entity.type.lower()

    if len(name) < MIN_NAME_LENGTH:
        return False
    if name in NOISE_TERMS:
        return False
    if _BARE_MEASUREMENT.match(name):
        return False
    if _LAB_VERB.match(name):
        return False

    if any(t in entity_type for t in ALWAYS_KEPT_TYPES):
        return True
    if "dosage" in entity_type:
        return True
    if "method" in entity_type and any(t in name for t in THERAPEUTIC_METHOD_TERMS):
        return True
    if "effect" in entity_type and any(t in name for t in THERAPEUTIC_EFFECT_TERMS):
        return True
    if "compound" in entity_type and len(name) > MIN_COMPOUND_LENGTH:
        return True

    # Short mechanisms are generic; long ones are specific enough to keep
    if "mechanism" in entity_type and len(name) < MIN_MECHANISM_LENGTH:
        return False
    if "method" in entity_type and any(t in name for t in EXPERIMENTAL_METHOD_TERMS):
        return False

    return True


def deduplicate_entities(entities: Iterable[Entity]) -> List[Entity]:
    """Keep the first entity per (normalized name, type); types come back upper-cased."""
    unique: Dict[str, Entity] = {}
    for entity in entities:
        key = entity_key(entity.name, entity.type)
        if key not in unique:
            unique[key] = Entity(name=entity.name, type=entity.type.upper())
    return list(unique.values())


def filter_relations_by_entities(
    relations: Iterable[Relation],
    valid_entities: Iterable[Entity]
) -> List[Relation]:
    """
    Keep relations whose source and target both name a known entity.

    Matching is on normalized names and ignores entity type.
    """
    names = {normalize_entity_name(e.name) for e in valid_entities}
    return [
        rel for rel in relations
        if rel.source and rel.relation and rel.target
        and normalize_entity_name(rel.source) in names
        and normalize_entity_name(rel.target) in names
    ]


def deduplicate_relations(relations: Iterable[Relation]) -> List[Relation]:
    """Keep the first occurrence of each literal (source, relation, target)."""
    seen = set()
    unique: List[Relation] = []
    for relation in relations:
        key = (relation.source, relation.relation, relation.target)
        if key not in seen:
            seen.add(key)
            unique.append(relation)
    return unique


def build_entity_id_map(entities: Iterable[GraphEntity]) -> Dict[str, str]:
    """Map ``normalized name|type`` of stored entities to their ids."""
    return {entity_key(e.name, e.type): e.id for e in entities}


def resolve_entity_id(name: str, entity_type: str, id_map: Dict[str, str]) -> Optional[str]:
    """
    Find the stored id for an extracted entity name.

    Tries the exact ``name|type`` key first, then any stored entity with
    the same normalized name regardless of type.
    """
    entity_id = id_map.get(entity_key(name, entity_type))
    if entity_id:
        return entity_id

    normalized = normalize_entity_name(name)
    for key, candidate in id_map.items():
        if key.rsplit("|", 1)[0] == normalized:
            return candidate
    return None

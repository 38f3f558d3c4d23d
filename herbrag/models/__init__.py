"""
Data models for the herbal knowledge graph system.
"""
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import List, Optional, Dict, Any
import uuid


class EntityType(Enum):
    """Closed set of entity categories the graph is organised around."""
    PLANT = "PLANT"
    COMPOUND = "COMPOUND"
    DISEASE = "DISEASE"
    SYMPTOM = "SYMPTOM"
    EFFECT = "EFFECT"
    MECHANISM = "MECHANISM"
    DOSAGE = "DOSAGE"
    METHOD = "METHOD"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["EntityType"]:
        """Return the matching member (case-insensitive), or None for free-form types."""
        if not value:
            return None
        try:
            return cls(value.strip().upper())
        except ValueError:
            return None


@dataclass
class Document:
    """Represents a PDF document."""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    name: str = ""
    path: str = ""
    pages: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def content(self) -> str:
        """Full raw text, pages separated by blank lines."""
        return "\n\n".join(self.pages)

    def first_pages(self, count: int = 3) -> str:
        return "\n\n".join(self.pages[:count])


@dataclass
class DocumentMetadata:
    """Bibliographic metadata and page furniture detected by the LLM."""
    title: str = ""
    authors: str = ""
    year: str = ""
    header_pattern: str = ""
    footer_pattern: str = ""


@dataclass
class JournalInfo:
    """Citation data attached to every stored chunk."""
    title: str = ""
    author: str = ""
    year: str = ""


@dataclass
class Chunk:
    """Sentence window of a document's cleaned text."""
    id: int
    text: str
    word_count: int = 0
    char_count: int = 0


@dataclass
class Entity:
    """Entity as extracted from text (not yet persisted)."""
    name: str
    type: str


@dataclass
class Relation:
    """Directed, labelled edge between two extracted entity names."""
    source: str
    relation: str
    target: str


@dataclass
class GraphExtractionResult:
    """Filtered entities and relations extracted from one chunk."""
    chunk_id: int
    entities: List[Entity] = field(default_factory=list)
    relations: List[Relation] = field(default_factory=list)


@dataclass
class GraphExtractionBatch:
    """Aggregate of a batch run; processed < total means some chunks were lost."""
    results: List[GraphExtractionResult] = field(default_factory=list)
    processed: int = 0
    total: int = 0


@dataclass
class GraphEntity:
    """Entity as stored in the graph database."""
    id: str
    name: str
    type: str

    def __post_init__(self):
        self.type = (self.type or "").upper()

    @property
    def entity_type(self) -> Optional[EntityType]:
        return EntityType.parse(self.type)


@dataclass
class GraphRelation:
    """Stored relation with both endpoints resolved."""
    id: str
    relation: str
    source: GraphEntity
    target: GraphEntity


@dataclass
class VectorSearchResult:
    """A chunk retrieved by cosine similarity."""
    id: str
    text: str
    journal_id: str = ""
    similarity: float = 0.0
    journal: Optional[JournalInfo] = None


@dataclass
class QueryEntity:
    """Entity mentioned in a user query."""
    name: str
    type: str


@dataclass
class GraphResults:
    """Graph evidence gathered for a query."""
    herbs: List[GraphEntity] = field(default_factory=list)
    compounds: List[GraphRelation] = field(default_factory=list)
    effects: List[GraphRelation] = field(default_factory=list)
    all_relations: List[GraphRelation] = field(default_factory=list)


@dataclass
class SearchSummary:
    """Counts reported alongside a hybrid search."""
    total_chunks: int = 0
    total_herbs: int = 0
    total_compounds: int = 0
    total_effects: int = 0


@dataclass
class HybridSearchResult:
    """Everything a hybrid search produced."""
    query: str
    query_entities: List[QueryEntity] = field(default_factory=list)
    vector_results: List[VectorSearchResult] = field(default_factory=list)
    graph_results: GraphResults = field(default_factory=GraphResults)
    answer: str = ""
    summary: SearchSummary = field(default_factory=SearchSummary)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class IngestionResult:
    """Statistics for one ingested document."""
    journal_id: str
    embeddings_count: int = 0
    entities_count: int = 0
    relations_count: int = 0
    graphs_processed: int = 0
    graphs_total: int = 0

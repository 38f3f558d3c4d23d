"""
Database stores using Repository Pattern.
"""
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence, Tuple
import logging

from ..models import (
    Chunk, DocumentMetadata, JournalInfo, GraphEntity, GraphRelation,
    GraphExtractionResult, VectorSearchResult,
)

logger = logging.getLogger(__name__)

# Relations that connect a plant to a condition it helps with
THERAPEUTIC_RELATIONS = ("treats", "reduces", "alleviates", "prevents", "cures")
CONDITION_TYPES = ("DISEASE", "SYMPTOM")


class BaseStore(ABC):
    """Abstract base class for all stores."""

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize the store (create collections/indices if needed)."""
        pass

    @abstractmethod
    async def clear(self) -> None:
        """Clear all data from the store."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close connections."""
        pass


class VectorStore(BaseStore):
    """Chunk embeddings with their journal citation."""

    @abstractmethod
    async def store_chunks(
        self,
        journal_id: str,
        journal: JournalInfo,
        chunks: Sequence[Chunk],
        vectors: Sequence[List[float]]
    ) -> int:
        """Store one vector per chunk; returns the number stored."""
        pass

    @abstractmethod
    async def search_similar(self, query_vector: List[float], top_k: int = 5) -> List[VectorSearchResult]:
        """Return the ``top_k`` chunks closest to ``query_vector``, best first."""
        pass

    @abstractmethod
    async def get_journals(self, ids: Sequence[str]) -> Dict[str, JournalInfo]:
        """Map embedding ids to the journal their chunk came from."""
        pass


class GraphStore(BaseStore):
    """Journals, entities and relations of the knowledge graph."""

    @abstractmethod
    async def store_journal(self, metadata: DocumentMetadata, file_path: str) -> str:
        """Create a journal record and return its id."""
        pass

    @abstractmethod
    async def store_graphs(
        self,
        journal_id: str,
        results: Sequence[GraphExtractionResult]
    ) -> Tuple[int, int]:
        """Persist extracted graphs; returns (entities stored, relations stored)."""
        pass

    @abstractmethod
    async def find_matching_entities(
        self,
        name: str,
        entity_type: Optional[str] = None,
        limit: int = 10
    ) -> List[GraphEntity]:
        """Entities whose name contains ``name`` (case-insensitive), optionally of one type."""
        pass

    @abstractmethod
    async def find_herbs_for_condition(self, name: str) -> List[GraphEntity]:
        """Plants with a therapeutic relation to a disease or symptom matching ``name``."""
        pass

    @abstractmethod
    async def get_relations_from_sources(self, ids: Sequence[str]) -> List[GraphRelation]:
        """All relations whose source is one of ``ids``."""
        pass

    @abstractmethod
    async def get_relations_to_targets(
        self,
        ids: Sequence[str],
        relation_types: Optional[Sequence[str]] = None
    ) -> List[GraphRelation]:
        """Relations whose target is one of ``ids``, optionally restricted by label."""
        pass

    @abstractmethod
    async def traverse_graph(self, ids: Sequence[str], max_hops: int = 2) -> List[GraphRelation]:
        """Relations on outgoing paths from ``ids`` of at most ``max_hops`` edges."""
        pass

    @abstractmethod
    async def get_stats(self) -> Dict[str, int]:
        """Counts of journals, entities and relations."""
        pass

"""
Qdrant vector database store.
"""
from typing import Dict, List, Optional, Sequence
import logging
import uuid

from qdrant_client import AsyncQdrantClient
from qdrant_client.http import models as qmodels

from . import VectorStore
from ..models import Chunk, JournalInfo, VectorSearchResult
from ..config import QdrantConfig, EmbeddingConfig
from ..exceptions import CollaboratorUnavailable

logger = logging.getLogger(__name__)


def _journal_from_payload(payload: dict) -> Optional[JournalInfo]:
    journal = payload.get("journal")
    if not journal:
        return None
    return JournalInfo(
        title=journal.get("title", ""),
        author=journal.get("author", ""),
        year=journal.get("year", ""),
    )


class QdrantStore(VectorStore):
    """
    Qdrant store for chunk embeddings.
    Uses an HNSW index with cosine distance.
    """

    def __init__(
        self,
        config: Optional[QdrantConfig] = None,
        embedding_config: Optional[EmbeddingConfig] = None
    ):
        """
        Initialize Qdrant store.

        Args:
            config: Qdrant configuration
            embedding_config: Embedding configuration (vector size)
        """
        self.config = config or QdrantConfig()
        self.embedding_config = embedding_config or EmbeddingConfig()
        self._client: Optional[AsyncQdrantClient] = None

    @property
    def client(self) -> AsyncQdrantClient:
        """Lazy load Qdrant client."""
        if self._client is None:
            self._client = AsyncQdrantClient(
                host=self.config.host,
                port=self.config.port
            )
            logger.info(f"Connected to Qdrant at {self.config.host}:{self.config.port}")
        return self._client

    async def initialize(self) -> None:
        """Create collection if it doesn't exist."""
        collections = (await self.client.get_collections()).collections
        if self.config.collection_name in [c.name for c in collections]:
            logger.info(f"Collection '{self.config.collection_name}' already exists")
            return

        await self.client.create_collection(
            collection_name=self.config.collection_name,
            vectors_config=qmodels.VectorParams(
                size=self.embedding_config.dimension,
                distance=qmodels.Distance.COSINE,
                hnsw_config=qmodels.HnswConfigDiff(
                    m=self.config.hnsw_m,
                    ef_construct=self.config.hnsw_ef_construct
                )
            )
        )
        logger.info(f"Created collection '{self.config.collection_name}'")

    async def store_chunks(
        self,
        journal_id: str,
        journal: JournalInfo,
        chunks: Sequence[Chunk],
        vectors: Sequence[List[float]]
    ) -> int:
        """
        Store chunks with their embeddings in Qdrant.

        Args:
            journal_id: Id of the journal the chunks belong to
            journal: Citation stored with every chunk
            chunks: Chunks in document order
            vectors: One embedding per chunk

        Returns:
            Number of points stored
        """
        if len(chunks) != len(vectors):
            raise ValueError(f"Got {len(chunks)} chunks but {len(vectors)} vectors")
        if not chunks:
            logger.warning("No chunks to store")
            return 0

        points = [
            qmodels.PointStruct(
                id=str(uuid.uuid4()),
                vector=list(vector),
                payload={
                    "text": chunk.text,
                    "journal_id": journal_id,
                    "chunk_index": chunk.id,
                    "word_count": chunk.word_count,
                    "journal": {
                        "title": journal.title,
                        "author": journal.author,
                        "year": journal.year,
                    },
                }
            )
            for chunk, vector in zip(chunks, vectors)
        ]

        # Batch upsert
        batch_size = 100
        for i in range(0, len(points), batch_size):
            await self.client.upsert(
                collection_name=self.config.collection_name,
                points=points[i:i + batch_size]
            )
            logger.debug(f"Upserted batch {i // batch_size + 1}")

        logger.info(f"Stored {len(points)} chunks in Qdrant")
        return len(points)

    async def search_similar(self, query_vector: List[float], top_k: int = 5) -> List[VectorSearchResult]:
        """
        Search for similar chunks using cosine similarity.

        Args:
            query_vector: Query embedding
            top_k: Number of results to return

        Returns:
            Results ordered by similarity, best first
        """
        try:
            response = await self.client.query_points(
                collection_name=self.config.collection_name,
                query=query_vector,
                limit=top_k,
                with_payload=True
            )
        except Exception as e:
            raise CollaboratorUnavailable("qdrant", str(e)) from e

        results = []
        for point in response.points:
            payload = point.payload or {}
            results.append(VectorSearchResult(
                id=str(point.id),
                text=payload.get("text", ""),
                journal_id=payload.get("journal_id", ""),
                similarity=point.score,
                journal=_journal_from_payload(payload),
            ))
        return results

    async def get_journals(self, ids: Sequence[str]) -> Dict[str, JournalInfo]:
        """Map embedding ids to their journal citation; ids without one are left out."""
        if not ids:
            return {}
        try:
            points = await self.client.retrieve(
                collection_name=self.config.collection_name,
                ids=list(ids),
                with_payload=True
            )
        except Exception as e:
            raise CollaboratorUnavailable("qdrant", str(e)) from e

        journals = {}
        for point in points:
            journal = _journal_from_payload(point.payload or {})
            if journal:
                journals[str(point.id)] = journal
        return journals

    async def clear(self) -> None:
        """Delete and recreate the collection."""
        try:
            await self.client.delete_collection(self.config.collection_name)
            logger.info(f"Deleted collection '{self.config.collection_name}'")
        except Exception as e:
            logger.warning(f"Could not delete collection: {e}")

        await self.initialize()

    async def close(self) -> None:
        """Close the client connection."""
        if self._client:
            await self._client.close()
            self._client = None
            logger.info("Closed Qdrant connection")

    async def get_collection_info(self) -> dict:
        """Get information about the collection."""
        info = await self.client.get_collection(self.config.collection_name)
        return {
            "name": self.config.collection_name,
            "points_count": info.points_count,
        }

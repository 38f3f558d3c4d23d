"""
Text processing utilities: chunking and embedding.
"""
from abc import ABC, abstractmethod
from typing import List, Optional
import asyncio
import logging
import re

from ..models import Chunk
from ..config import ChunkingConfig, EmbeddingConfig
from ..exceptions import CollaboratorUnavailable

logger = logging.getLogger(__name__)

_BODY_MARKER = re.compile(r"Isi:\s*([\s\S]*)")
_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")


def create_chunks(
    text: str,
    sentences_per_chunk: int = 12,
    overlap_sentences: int = 3,
    min_sentence_length: int = 10
) -> List[Chunk]:
    """
    Split text into overlapping windows of whole sentences.

    Windows advance by ``sentences_per_chunk - overlap_sentences`` so
    neighbouring chunks share ``overlap_sentences`` sentences. The last
    window may be shorter.

    Args:
        text: Cleaned document text; only the part after ``Isi:`` is used if present
        sentences_per_chunk: Sentences per window
        overlap_sentences: Sentences shared by consecutive windows
        min_sentence_length: Sentences this short or shorter are discarded

    Returns:
        Chunks with sequential ids starting at 1
    """
    if overlap_sentences >= sentences_per_chunk:
        raise ValueError(
            f"overlap_sentences ({overlap_sentences}) must be smaller than "
            f"sentences_per_chunk ({sentences_per_chunk})"
        )

    match = _BODY_MARKER.search(text)
    content = match.group(1).strip() if match else text

    sentences = [
        s.strip() for s in _SENTENCE_BOUNDARY.split(content)
        if len(s.strip()) > min_sentence_length
    ]

    chunks: List[Chunk] = []
    stride = sentences_per_chunk - overlap_sentences
    for start in range(0, len(sentences), stride):
        chunk_text = " ".join(sentences[start:start + sentences_per_chunk])
        if chunk_text.strip():
            chunks.append(Chunk(
                id=len(chunks) + 1,
                text=chunk_text,
                word_count=len(chunk_text.split()),
                char_count=len(chunk_text),
            ))
        # Stop once this window reached the end
        if start + sentences_per_chunk >= len(sentences):
            break

    return chunks


class SentenceChunker:
    """Chunks document text using the configured sentence window."""

    def __init__(self, config: Optional[ChunkingConfig] = None):
        self.config = config or ChunkingConfig()

    def chunk_text(self, text: str) -> List[Chunk]:
        chunks = create_chunks(
            text,
            sentences_per_chunk=self.config.sentences_per_chunk,
            overlap_sentences=self.config.overlap_sentences,
            min_sentence_length=self.config.min_sentence_length,
        )
        logger.info(f"Text split into {len(chunks)} chunks")
        return chunks


class EmbeddingModel(ABC):
    """Abstract base class for embedding models."""

    @abstractmethod
    def embed(self, text: str) -> List[float]:
        """Embed a single text."""
        pass

    @abstractmethod
    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """Embed multiple texts."""
        pass

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Return the embedding dimension."""
        pass


class SentenceTransformerEmbedding(EmbeddingModel):
    """
    Embedding model using sentence-transformers with mean pooling.
    Default model: BAAI/bge-small-en-v1.5
    """

    def __init__(self, config: Optional[EmbeddingConfig] = None):
        """
        Initialize the embedding model.

        Args:
            config: Embedding configuration
        """
        self.config = config or EmbeddingConfig()
        self._model = None
        self._dimension = self.config.dimension

    @property
    def model(self):
        """Lazy load the model; loaded once and reused."""
        if self._model is None:
            try:
                from sentence_transformers import SentenceTransformer, models
            except ImportError:
                raise ImportError(
                    "sentence-transformers is required. "
                    "Install it with: pip install sentence-transformers"
                )
            logger.info(f"Loading embedding model: {self.config.model_name}")
            transformer = models.Transformer(self.config.model_name)
            pooling = models.Pooling(
                transformer.get_word_embedding_dimension(),
                pooling_mode="mean"
            )
            self._model = SentenceTransformer(modules=[transformer, pooling])
        return self._model

    @property
    def dimension(self) -> int:
        """Return the embedding dimension."""
        return self._dimension

    def embed(self, text: str) -> List[float]:
        """
        Embed a single text.

        Args:
            text: Text to embed

        Returns:
            Embedding vector as list of floats
        """
        embedding = self.model.encode(
            text,
            convert_to_numpy=True,
            normalize_embeddings=self.config.normalize
        )
        return embedding.tolist()

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """
        Embed multiple texts.

        Args:
            texts: List of texts to embed

        Returns:
            List of embedding vectors
        """
        logger.info(f"Embedding {len(texts)} texts...")
        embeddings = self.model.encode(
            texts,
            convert_to_numpy=True,
            batch_size=self.config.batch_size,
            normalize_embeddings=self.config.normalize,
            show_progress_bar=len(texts) > self.config.batch_size
        )
        return embeddings.tolist()


class ChunkEmbedder:
    """Embeds chunks and queries off the event loop."""

    def __init__(self, embedding_model: EmbeddingModel):
        """
        Initialize the chunk embedder.

        Args:
            embedding_model: Embedding model to use, owned by the caller
        """
        self.embedding_model = embedding_model

    async def embed_chunks(self, chunks: List[Chunk]) -> List[List[float]]:
        """
        Embed chunk texts.

        Args:
            chunks: Chunks to embed

        Returns:
            One vector per chunk, in order
        """
        if not chunks:
            return []
        texts = [chunk.text for chunk in chunks]
        try:
            return await asyncio.to_thread(self.embedding_model.embed_batch, texts)
        except Exception as e:
            raise CollaboratorUnavailable("embedding", str(e)) from e

    async def embed_query(self, query: str) -> List[float]:
        """
        Embed a search query.

        Args:
            query: Query text

        Returns:
            Embedding vector
        """
        try:
            return await asyncio.to_thread(self.embedding_model.embed, query)
        except Exception as e:
            raise CollaboratorUnavailable("embedding", str(e)) from e

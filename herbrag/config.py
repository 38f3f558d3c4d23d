"""
Configuration management for the herbal knowledge graph system.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
import os


class LLMProvider(Enum):
    """Supported LLM providers for extraction and answer generation."""
    MISTRAL = "mistral"
    GEMINI = "gemini"
    ANTHROPIC = "anthropic"


@dataclass
class QdrantConfig:
    """Qdrant vector database configuration."""
    host: str = "localhost"
    port: int = 6333
    collection_name: str = "journal_chunks"
    # HNSW specific parameters
    hnsw_m: int = 16  # Number of edges per node
    hnsw_ef_construct: int = 100  # Size of dynamic candidate list for construction


@dataclass
class Neo4jConfig:
    """Neo4j graph database configuration."""
    uri: str = "bolt://localhost:7687"
    user: str = "neo4j"
    password: str = "password"
    database: str = "neo4j"


@dataclass
class EmbeddingConfig:
    """Embedding model configuration."""
    model_name: str = "BAAI/bge-small-en-v1.5"
    dimension: int = 384  # bge-small-en-v1.5 output dimension
    normalize: bool = True
    batch_size: int = 32


@dataclass
class ChunkingConfig:
    """Sentence-window chunking configuration."""
    sentences_per_chunk: int = 12
    overlap_sentences: int = 3
    min_sentence_length: int = 10  # Sentences this short or shorter are dropped


@dataclass
class LLMConfig:
    """LLM configuration for metadata/graph extraction and answering."""
    provider: LLMProvider = LLMProvider.MISTRAL
    # Mistral
    mistral_api_key: Optional[str] = field(default_factory=lambda: os.getenv("MISTRAL_API_KEY"))
    mistral_model: str = "mistral-small-latest"
    # Gemini
    gemini_api_key: Optional[str] = field(default_factory=lambda: os.getenv("GOOGLE_API_KEY"))
    gemini_model: str = "gemini-2.5-flash"
    # Anthropic
    anthropic_api_key: Optional[str] = field(default_factory=lambda: os.getenv("ANTHROPIC_API_KEY"))
    anthropic_model: str = "claude-sonnet-4-5-20250929"
    # Seconds before a single completion request is abandoned
    request_timeout: float = 60.0


@dataclass
class ExtractionConfig:
    """Graph extraction configuration."""
    batch_size: int = 5
    max_entities: int = 15
    metadata_chars: int = 3000  # Leading characters sent for metadata extraction
    metadata_pages: int = 3


@dataclass
class SearchConfig:
    """Hybrid search configuration."""
    top_k: int = 5
    excerpt_chars: int = 500  # Per-chunk context sent to the answer prompt
    max_relations: int = 15
    max_sources: int = 3


@dataclass
class AppConfig:
    """Main application configuration."""
    qdrant: QdrantConfig = field(default_factory=QdrantConfig)
    neo4j: Neo4jConfig = field(default_factory=Neo4jConfig)
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    chunking: ChunkingConfig = field(default_factory=ChunkingConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    docs_dir: str = "docs"

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create configuration from environment variables."""
        config = cls()

        # Override with environment variables if present
        if os.getenv("QDRANT_HOST"):
            config.qdrant.host = os.getenv("QDRANT_HOST")
        if os.getenv("QDRANT_PORT"):
            config.qdrant.port = int(os.getenv("QDRANT_PORT"))
        if os.getenv("QDRANT_COLLECTION"):
            config.qdrant.collection_name = os.getenv("QDRANT_COLLECTION")

        if os.getenv("NEO4J_URI"):
            config.neo4j.uri = os.getenv("NEO4J_URI")
        if os.getenv("NEO4J_USER"):
            config.neo4j.user = os.getenv("NEO4J_USER")
        if os.getenv("NEO4J_PASSWORD"):
            config.neo4j.password = os.getenv("NEO4J_PASSWORD")

        if os.getenv("EMBEDDING_MODEL"):
            config.embedding.model_name = os.getenv("EMBEDDING_MODEL")

        if os.getenv("LLM_PROVIDER"):
            config.llm.provider = LLMProvider(os.getenv("LLM_PROVIDER"))
        if os.getenv("LLM_TIMEOUT"):
            config.llm.request_timeout = float(os.getenv("LLM_TIMEOUT"))

        if os.getenv("DOCS_DIR"):
            config.docs_dir = os.getenv("DOCS_DIR")

        return config

"""
herbrag - Hybrid Graph RAG over herbal medicine journals

This package provides:
1. Ingestion: Load journal PDFs, clean, chunk, embed, extract a knowledge
   graph with an LLM, and store in Qdrant (vectors) and Neo4j (graph)
2. Hybrid Search: Answer "what herb for X" questions from similar chunks
   and therapeutic relations in the graph

Usage:
    # Ingestion
    python -m herbrag.etl --docs-dir docs --llm-provider mistral

    # Search REPL
    python -m herbrag.repl

Environment Variables:
    - MISTRAL_API_KEY: Mistral API key (default provider)
    - GOOGLE_API_KEY: Google API key for Gemini
    - ANTHROPIC_API_KEY: Anthropic API key for Claude
    - LLM_PROVIDER, LLM_TIMEOUT: Provider choice and per-request timeout
    - QDRANT_HOST, QDRANT_PORT, QDRANT_COLLECTION: Qdrant connection
    - NEO4J_URI, NEO4J_USER, NEO4J_PASSWORD: Neo4j connection
    - EMBEDDING_MODEL, DOCS_DIR
"""

from .config import AppConfig, LLMProvider
from .exceptions import HerbragError, ParseError, CollaboratorUnavailable, ValidationError
from .models import (
    Document, DocumentMetadata, Chunk, Entity, Relation, EntityType,
    GraphExtractionResult, GraphExtractionBatch, HybridSearchResult,
)
from .search import HybridSearchEngine

__all__ = [
    "AppConfig",
    "LLMProvider",
    "HerbragError",
    "ParseError",
    "CollaboratorUnavailable",
    "ValidationError",
    "Document",
    "DocumentMetadata",
    "Chunk",
    "Entity",
    "Relation",
    "EntityType",
    "GraphExtractionResult",
    "GraphExtractionBatch",
    "HybridSearchResult",
    "HybridSearchEngine",
]

"""
Ingestion pipeline: journal PDFs into the vector store and the knowledge graph.
"""
import asyncio
import logging
from typing import Optional, List
from dotenv import load_dotenv

load_dotenv()

from .config import AppConfig, LLMProvider
from .models import Document, IngestionResult, JournalInfo
from .exceptions import ValidationError
from .loaders import PDFLoader
from .llm import LLMClient
from .processors import SentenceChunker, ChunkEmbedder, SentenceTransformerEmbedding
from .processors.text_cleaning import clean_academic_text, format_document_text
from .stores import VectorStore, GraphStore
from .stores.qdrant_store import QdrantStore
from .stores.neo4j_store import Neo4jStore
from .extractors import KnowledgeGraphExtractor

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


class IngestionPipeline:
    """
    Ingestion pipeline using Facade Pattern to orchestrate:
    1. PDF loading and metadata extraction
    2. Text cleaning and sentence chunking
    3. Embedding generation
    4. Knowledge graph extraction
    5. Storage in Qdrant (vector) and Neo4j (graph)
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        llm: Optional[LLMClient] = None,
        embedder: Optional[ChunkEmbedder] = None,
        vector_store: Optional[VectorStore] = None,
        graph_store: Optional[GraphStore] = None
    ):
        """
        Initialize the ingestion pipeline.

        Args:
            config: Application configuration
            llm: LLM client (built from config if omitted)
            embedder: Chunk embedder (built from config if omitted)
            vector_store: Vector store (Qdrant if omitted)
            graph_store: Graph store (Neo4j if omitted)
        """
        self.config = config or AppConfig.from_env()

        self.loader = PDFLoader(self.config.docs_dir)
        self.chunker = SentenceChunker(self.config.chunking)

        self.llm = llm or LLMClient(self.config.llm)
        self.extractor = KnowledgeGraphExtractor(self.llm, self.config.extraction)

        # Embedding
        if embedder is None:
            self.embedding_model = SentenceTransformerEmbedding(self.config.embedding)
            embedder = ChunkEmbedder(self.embedding_model)
        self.embedder = embedder

        # Stores
        self.vector_store = vector_store or QdrantStore(
            config=self.config.qdrant,
            embedding_config=self.config.embedding
        )
        self.graph_store = graph_store or Neo4jStore(self.config.neo4j)

    async def initialize_stores(self) -> None:
        """Initialize all database stores."""
        logger.info("Initializing database stores...")
        await self.vector_store.initialize()
        await self.graph_store.initialize()
        logger.info("All stores initialized")

    async def clear_stores(self) -> None:
        """Clear all data from stores."""
        logger.info("Clearing all stores...")
        await self.vector_store.clear()
        await self.graph_store.clear()
        logger.info("All stores cleared")

    async def ingest_document(self, document: Document) -> IngestionResult:
        """
        Run one document through the whole pipeline.

        Args:
            document: Loaded PDF

        Returns:
            IngestionResult with counts of stored embeddings, entities and relations

        Raises:
            ValidationError: If the document has no text or yields no chunks
        """
        if not document.content.strip():
            raise ValidationError(f"Document '{document.name}' has no extractable text")

        logger.info(f"Processing document: {document.name}")
        metadata = await self.extractor.extract_metadata(
            document.first_pages(self.config.extraction.metadata_pages)
        )
        logger.info(f"Metadata: title='{metadata.title}', year='{metadata.year}'")

        cleaned = clean_academic_text(
            document.content,
            metadata.header_pattern,
            metadata.footer_pattern
        )
        text = format_document_text(metadata, cleaned, fallback_title=document.name)

        chunks = self.chunker.chunk_text(text)
        if not chunks:
            raise ValidationError(f"Document '{document.name}' produced no chunks after cleaning")

        logger.info("Embedding chunks...")
        vectors = await self.embedder.embed_chunks(chunks)

        logger.info("Extracting knowledge graphs...")
        batch = await self.extractor.extract_graphs_in_batches(chunks)
        logger.info(f"Extracted graphs from {batch.processed}/{batch.total} chunks")

        journal_id = await self.graph_store.store_journal(metadata, document.path)
        journal = JournalInfo(
            title=metadata.title or document.name,
            author=metadata.authors,
            year=metadata.year
        )
        embeddings_count = await self.vector_store.store_chunks(journal_id, journal, chunks, vectors)
        entities_count, relations_count = await self.graph_store.store_graphs(journal_id, batch.results)

        return IngestionResult(
            journal_id=journal_id,
            embeddings_count=embeddings_count,
            entities_count=entities_count,
            relations_count=relations_count,
            graphs_processed=batch.processed,
            graphs_total=batch.total,
        )

    async def process_directory(self, clear_existing: bool = False) -> dict:
        """
        Ingest every PDF in the configured directory.

        A document that fails is logged and skipped.

        Args:
            clear_existing: Whether to clear existing data before processing

        Returns:
            Dictionary with processing statistics
        """
        stats = {
            "documents_found": 0,
            "documents_processed": 0,
            "documents_failed": 0,
            "embeddings_stored": 0,
            "entities_stored": 0,
            "relations_stored": 0,
        }

        if clear_existing:
            await self.clear_stores()
        else:
            await self.initialize_stores()

        pdf_files = self.loader.list_files()
        stats["documents_found"] = len(pdf_files)
        if not pdf_files:
            logger.warning("No documents found to process")
            return stats

        results: List[IngestionResult] = []
        for pdf_path in pdf_files:
            try:
                document = self.loader.load_file(pdf_path)
                results.append(await self.ingest_document(document))
            except Exception as e:
                stats["documents_failed"] += 1
                logger.error(f"Failed to ingest {pdf_path.name}: {e}")

        stats["documents_processed"] = len(results)
        stats["embeddings_stored"] = sum(r.embeddings_count for r in results)
        stats["entities_stored"] = sum(r.entities_count for r in results)
        stats["relations_stored"] = sum(r.relations_count for r in results)

        logger.info("Ingestion completed")
        self._print_stats(stats)
        return stats

    def _print_stats(self, stats: dict) -> None:
        """Print processing statistics."""
        print("\n" + "=" * 50)
        print("Ingestion Statistics")
        print("=" * 50)
        print(f"Documents found:      {stats['documents_found']}")
        print(f"Documents processed:  {stats['documents_processed']}")
        print(f"Documents failed:     {stats['documents_failed']}")
        print(f"Embeddings stored:    {stats['embeddings_stored']}")
        print(f"Entities stored:      {stats['entities_stored']}")
        print(f"Relations stored:     {stats['relations_stored']}")
        print("=" * 50 + "\n")

    async def close(self) -> None:
        """Close all connections."""
        await self.vector_store.close()
        await self.graph_store.close()
        logger.info("All connections closed")


async def run(config: AppConfig, clear_existing: bool = False) -> dict:
    pipeline = IngestionPipeline(config)
    try:
        return await pipeline.process_directory(clear_existing=clear_existing)
    finally:
        await pipeline.close()


def main():
    """Main entry point for the ingestion pipeline."""
    import argparse

    parser = argparse.ArgumentParser(description="Ingest journal PDFs into Qdrant and Neo4j")
    parser.add_argument(
        "--docs-dir",
        type=str,
        default=None,
        help="Directory containing PDF files (default: DOCS_DIR or docs)"
    )
    parser.add_argument(
        "--clear",
        action="store_true",
        help="Clear existing data before processing"
    )
    parser.add_argument(
        "--llm-provider",
        type=str,
        choices=[p.value for p in LLMProvider],
        default=None,
        help="LLM provider for extraction (default: LLM_PROVIDER or mistral)"
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=5,
        help="Chunks extracted concurrently per batch (default: 5)"
    )
    parser.add_argument(
        "--sentences-per-chunk",
        type=int,
        default=12,
        help="Sentences per chunk (default: 12)"
    )
    parser.add_argument(
        "--overlap-sentences",
        type=int,
        default=3,
        help="Sentences shared by consecutive chunks (default: 3)"
    )

    args = parser.parse_args()

    # Build configuration
    config = AppConfig.from_env()
    if args.docs_dir:
        config.docs_dir = args.docs_dir
    if args.llm_provider:
        config.llm.provider = LLMProvider(args.llm_provider)
    config.extraction.batch_size = args.batch_size
    config.chunking.sentences_per_chunk = args.sentences_per_chunk
    config.chunking.overlap_sentences = args.overlap_sentences

    asyncio.run(run(config, clear_existing=args.clear))


if __name__ == "__main__":
    main()

"""
REPL (Read-Eval-Print Loop) interface for hybrid search.
"""
import asyncio
import json
import logging
from typing import Optional, List
from dotenv import load_dotenv

load_dotenv()

from .config import AppConfig
from .models import GraphRelation, HybridSearchResult, VectorSearchResult
from .llm import LLMClient
from .processors import ChunkEmbedder, SentenceTransformerEmbedding
from .stores.qdrant_store import QdrantStore
from .stores.neo4j_store import Neo4jStore
from .search import HybridSearchEngine

# Configure logging
logging.basicConfig(
    level=logging.WARNING,  # Reduce noise during REPL
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

HELP_TEXT = """
Commands:
  <question>     - Hybrid search with generated answer
  /vector <q>    - Vector search only
  /graph <name>  - Relations within two hops of matching entities
  /json <q>      - Hybrid search, print the full result as JSON
  /top <n>       - Set number of chunks retrieved
  /stats         - Show database statistics
  /help          - Show this help
  /quit          - Exit"""


class SearchEngine:
    """
    Wires the stores, embedder and LLM into a HybridSearchEngine.
    """

    def __init__(self, config: Optional[AppConfig] = None):
        """
        Initialize the search engine.

        Args:
            config: Application configuration
        """
        self.config = config or AppConfig.from_env()

        # Embedding model for query encoding
        self.embedding_model = SentenceTransformerEmbedding(self.config.embedding)
        self.embedder = ChunkEmbedder(self.embedding_model)

        # Initialize stores
        self.qdrant_store = QdrantStore(
            config=self.config.qdrant,
            embedding_config=self.config.embedding
        )
        self.neo4j_store = Neo4jStore(self.config.neo4j)

        self.llm = LLMClient(self.config.llm)
        self.hybrid = HybridSearchEngine(
            llm=self.llm,
            embedder=self.embedder,
            vector_store=self.qdrant_store,
            graph_store=self.neo4j_store,
            config=self.config.search
        )

    async def connect(self) -> None:
        """Test connections to all databases."""
        print("Connecting to databases...")

        try:
            await self.qdrant_store.get_collection_info()
            print("  ✓ Qdrant connected")
        except Exception as e:
            print(f"  ✗ Qdrant connection failed: {e}")

        try:
            await self.neo4j_store.driver.verify_connectivity()
            print("  ✓ Neo4j connected")
        except Exception as e:
            print(f"  ✗ Neo4j connection failed: {e}")

        print()

    async def search(self, query: str, top_k: Optional[int] = None) -> HybridSearchResult:
        return await self.hybrid.hybrid_search(query, top_k)

    async def search_vector(self, query: str, top_k: Optional[int] = None) -> List[VectorSearchResult]:
        return await self.hybrid.search_vectors(query, top_k or self.config.search.top_k)

    async def explore_graph(self, name: str, max_hops: int = 2) -> List[GraphRelation]:
        """Relations around every entity whose name contains ``name``."""
        entities = await self.neo4j_store.find_matching_entities(name)
        if not entities:
            return []
        return await self.neo4j_store.traverse_graph([e.id for e in entities], max_hops=max_hops)

    async def close(self) -> None:
        """Close all connections."""
        await self.qdrant_store.close()
        await self.neo4j_store.close()


def print_vector_results(results: List[VectorSearchResult], max_content_len: int = 200):
    """Pretty print vector search results."""
    print(f"\n{'='*60}")
    print(" 🎯 Journal Excerpts (Qdrant)")
    print(f"{'='*60}")

    if not results:
        print("  No results found.")
        return

    for i, result in enumerate(results, 1):
        content_preview = result.text[:max_content_len]
        if len(result.text) > max_content_len:
            content_preview += "..."

        print(f"\n  [{i}] Similarity: {result.similarity:.4f}")
        if result.journal:
            print(f"      Journal: {result.journal.title} ({result.journal.year})")
        print(f"      Content: {content_preview}")


def print_relations(relations: List[GraphRelation], title: str):
    """Pretty print graph relations."""
    print(f"\n{'='*60}")
    print(f" {title}")
    print(f"{'='*60}")

    if not relations:
        print("  No relations found.")
        return

    for rel in relations:
        print(f"  {rel.source.name} ({rel.source.type}) -[{rel.relation}]-> {rel.target.name} ({rel.target.type})")


def print_hybrid_result(result: HybridSearchResult):
    """Pretty print a hybrid search result."""
    print_vector_results(result.vector_results)

    herbs = ", ".join(h.name for h in result.graph_results.herbs)
    print(f"\n🌿 Herbs: {herbs or 'none found'}")
    print_relations(result.graph_results.all_relations, "🕸️ Herb Relations (Neo4j)")

    print(f"\n{'='*60}")
    print(" 💬 Answer")
    print(f"{'='*60}")
    print(result.answer)

    s = result.summary
    print(f"\n({s.total_chunks} chunks, {s.total_herbs} herbs, "
          f"{s.total_compounds} compounds, {s.total_effects} effects)")


async def run_repl(config: Optional[AppConfig] = None):
    """
    Run the search REPL.

    Args:
        config: Application configuration
    """
    engine = SearchEngine(config)

    print("\n" + "="*60)
    print(" 🔍 Herbal Knowledge Search REPL")
    print("="*60)
    print(HELP_TEXT)
    print()

    # Connect to databases
    await engine.connect()

    top_k = engine.config.search.top_k

    try:
        while True:
            try:
                user_input = (await asyncio.to_thread(input, "\n🔎 Query> ")).strip()
            except EOFError:
                break

            if not user_input:
                continue

            # Handle commands
            if user_input.lower() in ["/quit", "/exit", "/q"]:
                print("Goodbye!")
                break

            if user_input.lower() == "/help":
                print(HELP_TEXT)
                continue

            if user_input.lower().startswith("/top "):
                try:
                    top_k = int(user_input.split()[1])
                    print(f"Chunks per search set to: {top_k}")
                except (IndexError, ValueError):
                    print("Usage: /top <number>")
                continue

            if user_input.lower() == "/stats":
                print("\n📊 Database Statistics:")
                try:
                    qdrant_info = await engine.qdrant_store.get_collection_info()
                    print(f"  Qdrant: {qdrant_info['points_count']} vectors")
                except Exception as e:
                    print(f"  Qdrant: Error - {e}")

                try:
                    neo4j_stats = await engine.neo4j_store.get_stats()
                    print(f"  Neo4j: {neo4j_stats['journals']} journals, "
                          f"{neo4j_stats['entities']} entities, "
                          f"{neo4j_stats['relations']} relations")
                except Exception as e:
                    print(f"  Neo4j: Error - {e}")
                continue

            if user_input.startswith("/vector "):
                query = user_input[8:].strip()
                if query:
                    print_vector_results(await engine.search_vector(query, top_k))
                continue

            if user_input.startswith("/graph "):
                name = user_input[7:].strip()
                if name:
                    try:
                        relations = await engine.explore_graph(name)
                        print_relations(relations, f"🕸️ Graph around '{name}'")
                    except Exception as e:
                        print(f"\n❌ Graph error: {e}")
                continue

            if user_input.startswith("/json "):
                query = user_input[6:].strip()
                if query:
                    result = await engine.search(query, top_k)
                    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
                continue

            # Default: hybrid search
            print(f"\nSearching for: '{user_input}'")
            result = await engine.search(user_input, top_k)
            print_hybrid_result(result)

    except KeyboardInterrupt:
        print("\nGoodbye!")
    finally:
        await engine.close()


def main():
    """Main entry point for the search REPL."""
    import argparse

    parser = argparse.ArgumentParser(description="Hybrid search over herbal journals")
    parser.add_argument(
        "--query",
        type=str,
        default=None,
        help="Run a single query and exit"
    )
    parser.add_argument(
        "--top-k",
        type=int,
        default=None,
        help="Number of chunks retrieved (default: 5)"
    )
    args = parser.parse_args()

    config = AppConfig.from_env()
    if args.top_k:
        config.search.top_k = args.top_k

    if args.query:
        asyncio.run(_run_once(config, args.query))
    else:
        asyncio.run(run_repl(config))


async def _run_once(config: AppConfig, query: str):
    engine = SearchEngine(config)
    try:
        print_hybrid_result(await engine.search(query))
    finally:
        await engine.close()


if __name__ == "__main__":
    main()

"""
Hybrid search combining vector similarity over journal chunks with
knowledge graph lookups, answered by an LLM.
"""
from typing import Dict, List, Optional, Sequence
import asyncio
import logging

from ..models import (
    QueryEntity, VectorSearchResult, GraphEntity, GraphRelation,
    GraphResults, SearchSummary, HybridSearchResult, JournalInfo, EntityType,
)
from ..config import SearchConfig
from ..exceptions import CollaboratorUnavailable, ParseError
from ..extractors.json_parser import parse_json_response
from ..llm import LLMClient
from ..processors import ChunkEmbedder
from ..stores import VectorStore, GraphStore, CONDITION_TYPES

logger = logging.getLogger(__name__)

EXPANSION_TARGET_TYPES = (EntityType.COMPOUND, EntityType.EFFECT, EntityType.DISEASE)

NO_ANSWER = "Unable to generate answer."
ANSWER_ERROR = "Unable to generate answer due to an error."


QUERY_ENTITY_PROMPT = """Extract medical/herbal entities from this query. Focus on symptoms, diseases, herbs, or compounds mentioned.

Query: "{query}"

Return ONLY a JSON array of entities with no markdown formatting:
[{{"name":"entity_name","type":"SYMPTOM|DISEASE|PLANT|COMPOUND|EFFECT"}}]

Type classification:
- SYMPTOM: pain, fever, headache, nausea, etc.
- DISEASE: diabetes, hypertension, cancer, etc.
- PLANT: ginger, turmeric, garlic, herbal names
- COMPOUND: curcumin, gingerol, chemical compounds
- EFFECT: anti-inflammatory, analgesic, antioxidant

Examples:
"what herb for headache" → [{{"name":"headache","type":"SYMPTOM"}}]
"ginger benefits for diabetes" → [{{"name":"ginger","type":"PLANT"}},{{"name":"diabetes","type":"DISEASE"}}]

JSON only:"""


ANSWER_PROMPT = """You are a herbal medicine expert. Answer the question using ONLY the provided context from research papers and knowledge graph.

Question: {query}

VECTOR CONTEXT (Research Paper Excerpts):
{chunks}

KNOWLEDGE GRAPH CONTEXT:
Relevant Herbs: {herbs}

Therapeutic Relations:
{relations}

INSTRUCTIONS:
1. Answer the question directly and concisely
2. Focus on herbal treatments and their therapeutic effects
3. IMPORTANT: Mention ALL herbs listed in "Relevant Herbs" above, even if their direct relation to the question is unclear
4. For each herb, explain its known effects or compounds if available in the context
5. Include dosage or preparation methods if mentioned in context
6. Keep answer to 5-10 sentences maximum
7. If context is insufficient for some herbs, mention them anyway and note that more research may be needed
8. DO NOT make up information not in the context

Answer:"""


def unique_sources(results: Sequence[VectorSearchResult], limit: int = 3) -> List[JournalInfo]:
    """Journals cited by the results, first occurrence per title, at most ``limit``."""
    sources: List[JournalInfo] = []
    titles = set()
    for result in results:
        if result.journal and result.journal.title not in titles:
            titles.add(result.journal.title)
            sources.append(result.journal)
    return sources[:limit]


def format_sources(sources: Sequence[JournalInfo]) -> str:
    return "\n".join(
        f"[{i}] {j.title}. {j.author}. {j.year}."
        for i, j in enumerate(sources, 1)
    )


class HybridSearchEngine:
    """
    Answers a question from two evidence channels.

    Stages run in order: query entity extraction, vector search, graph
    lookup of herbs, expansion of those herbs' relations, then answer
    generation. Every stage degrades to empty output on failure, so a
    search always returns a complete result.
    """

    def __init__(
        self,
        llm: LLMClient,
        embedder: ChunkEmbedder,
        vector_store: VectorStore,
        graph_store: GraphStore,
        config: Optional[SearchConfig] = None
    ):
        """
        Initialize the search engine.

        Args:
            llm: Client for query entity extraction and answering
            embedder: Query embedder
            vector_store: Chunk embedding store
            graph_store: Knowledge graph store
            config: Search configuration
        """
        self.llm = llm
        self.embedder = embedder
        self.vector_store = vector_store
        self.graph_store = graph_store
        self.config = config or SearchConfig()

    async def extract_query_entities(self, query: str) -> List[QueryEntity]:
        """
        Classify the entities mentioned in a query.

        Returns:
            Entities with both a name and a type; empty on any failure
        """
        try:
            content = await self.llm.complete(
                QUERY_ENTITY_PROMPT.format(query=query),
                temperature=0.1,
                max_tokens=500
            )
            parsed = parse_json_response(content or "[]")
        except (CollaboratorUnavailable, ParseError) as e:
            logger.warning(f"Query entity extraction failed: {e}")
            return []

        if not isinstance(parsed, list):
            return []
        return [
            QueryEntity(name=str(item["name"]), type=str(item["type"]).upper())
            for item in parsed
            if isinstance(item, dict) and item.get("name") and item.get("type")
        ]

    async def search_vectors(self, query: str, top_k: int) -> List[VectorSearchResult]:
        """
        Embed the query, fetch the closest chunks and attach their journals.

        Returns:
            Results ordered by similarity; empty if embedding or the store fails.
            Hits are kept without journals if only the journal lookup fails.
        """
        try:
            query_vector = await self.embedder.embed_query(query)
            results = await self.vector_store.search_similar(query_vector, top_k)
        except CollaboratorUnavailable as e:
            logger.warning(f"Vector search failed, continuing with graph only: {e}")
            return []

        logger.info(f"Found {len(results)} similar chunks")
        if not results:
            return results

        try:
            journals = await self.vector_store.get_journals([r.id for r in results])
        except CollaboratorUnavailable as e:
            logger.warning(f"Journal lookup failed, keeping chunks without sources: {e}")
            return results

        for result in results:
            result.journal = journals.get(result.id, result.journal)
        return results

    async def _lookup_entity(self, entity: QueryEntity) -> List[GraphEntity]:
        """Herbs related to one query entity; empty if the lookup fails."""
        try:
            matches = await self.graph_store.find_matching_entities(entity.name, entity.type)
            logger.info(f"Found {len(matches)} entities matching '{entity.name}' ({entity.type})")

            if entity.type in CONDITION_TYPES:
                herbs = await self.graph_store.find_herbs_for_condition(entity.name)
                logger.info(f"Found {len(herbs)} herbs for condition '{entity.name}'")
                return herbs
            elif entity.type == EntityType.PLANT.value:
                return await self.graph_store.find_matching_entities(entity.name, EntityType.PLANT.value)
        except CollaboratorUnavailable as e:
            logger.warning(f"Graph lookup for '{entity.name}' failed: {e}")
        return []

    async def search_graph(self, entities: Sequence[QueryEntity]) -> List[GraphEntity]:
        """
        Find herbs for the query entities.

        Lookups run concurrently. Herbs are deduplicated by id, keeping the
        first occurrence in query entity order.
        """
        found = await asyncio.gather(*(self._lookup_entity(e) for e in entities))

        herbs: Dict[str, GraphEntity] = {}
        for herb in (h for group in found for h in group):
            herbs.setdefault(herb.id, herb)

        logger.info(f"Found {len(herbs)} herbs")
        return list(herbs.values())

    async def expand_herbs(self, herbs: Sequence[GraphEntity]) -> List[GraphRelation]:
        """
        Relations from the herbs to compounds, effects and diseases.

        All outgoing relations are fetched and filtered here on the
        parsed target type, so stored type casing does not matter.
        """
        if not herbs:
            return []
        try:
            relations = await self.graph_store.get_relations_from_sources([h.id for h in herbs])
        except CollaboratorUnavailable as e:
            logger.warning(f"Graph expansion failed: {e}")
            return []

        return [
            rel for rel in relations
            if rel.source and rel.target
            and rel.target.entity_type in EXPANSION_TARGET_TYPES
        ]

    async def generate_answer(
        self,
        query: str,
        vector_results: Sequence[VectorSearchResult],
        herbs: Sequence[GraphEntity],
        relations: Sequence[GraphRelation]
    ) -> str:
        """
        Answer the query from the gathered context.

        Cited journals are appended as a numbered sources list. Never raises;
        a failed request yields a fixed apology.
        """
        chunks_text = "\n\n".join(
            f"[Chunk {i}]: {r.text[:self.config.excerpt_chars]}"
            for i, r in enumerate(vector_results, 1)
        )
        herbs_list = ", ".join(h.name for h in herbs)
        relations_list = "\n".join(
            f"- {r.source.name} {r.relation} {r.target.name} ({r.target.type})"
            for r in relations[:self.config.max_relations]
        )
        sources = unique_sources(vector_results, self.config.max_sources)

        prompt = ANSWER_PROMPT.format(
            query=query,
            chunks=chunks_text,
            herbs=herbs_list or "None found",
            relations=relations_list or "No relations found",
        )
        try:
            answer = await self.llm.complete(prompt, temperature=0.3, max_tokens=500)
        except CollaboratorUnavailable as e:
            logger.error(f"Error generating answer: {e}")
            return ANSWER_ERROR

        answer = answer or NO_ANSWER
        if sources:
            answer += "\n\n**Sources:**\n" + format_sources(sources)
        return answer

    async def hybrid_search(self, query: str, top_k: Optional[int] = None) -> HybridSearchResult:
        """
        Run the full hybrid search.

        Args:
            query: Natural-language question
            top_k: Number of chunks to retrieve (default from config)

        Returns:
            HybridSearchResult with evidence, answer and summary counts
        """
        top_k = top_k or self.config.top_k
        logger.info(f"Hybrid search: '{query}'")

        query_entities = await self.extract_query_entities(query)
        logger.info(f"Query entities: {[(e.name, e.type) for e in query_entities]}")

        vector_results = await self.search_vectors(query, top_k)
        herbs = await self.search_graph(query_entities)
        relations = await self.expand_herbs(herbs)

        compounds = [r for r in relations if r.target.entity_type is EntityType.COMPOUND]
        effects = [r for r in relations if r.target.entity_type is EntityType.EFFECT]
        logger.info(f"Found {len(compounds)} compounds, {len(effects)} effects")

        answer = await self.generate_answer(query, vector_results, herbs, relations)

        return HybridSearchResult(
            query=query,
            query_entities=query_entities,
            vector_results=vector_results,
            graph_results=GraphResults(
                herbs=herbs,
                compounds=compounds,
                effects=effects,
                all_relations=relations,
            ),
            answer=answer,
            summary=SearchSummary(
                total_chunks=len(vector_results),
                total_herbs=len(herbs),
                total_compounds=len(compounds),
                total_effects=len(effects),
            ),
        )

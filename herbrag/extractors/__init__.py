"""
Metadata and knowledge graph extraction from journal text using an LLM.
"""
from typing import Any, List, Optional, Sequence
import asyncio
import logging

from ..models import (
    Chunk, DocumentMetadata, Entity, Relation,
    GraphExtractionResult, GraphExtractionBatch,
)
from ..config import ExtractionConfig
from ..exceptions import CollaboratorUnavailable, ParseError
from ..llm import LLMClient
from .json_parser import parse_json_response, scan_key_value_records
from .filters import filter_entity, filter_relations_by_entities

logger = logging.getLogger(__name__)


METADATA_PROMPT = """Analyze this academic paper's first pages and extract metadata. Return ONLY a JSON object with no additional text or markdown formatting:

Text:
{text}

Extract:
1. title: The full paper title
2. authors: All author names, comma-separated
3. year: Publication year (4 digits)
4. headerPattern: Text pattern that repeats at top of pages (journal name, ISSN, etc.)
5. footerPattern: Text pattern at bottom of pages (page numbers, copyright, etc.)

Return format (no markdown, no code blocks):
{{"title":"...","authors":"...","year":"...","headerPattern":"...","footerPattern":"..."}}"""


GRAPH_EXTRACTION_PROMPT = """Extract entities and relations focused on answering "What herb for [condition]" questions. Return ONLY a JSON object.

Text:
{text}

PRIORITY EXTRACTION:

1. PLANT entities (medicinal herbs):
   - Common names: ginger, turmeric, garlic, etc.
   - Scientific names: Zingiber officinale, Curcuma longa
   - Plant parts: ginger root, turmeric rhizome

2. DISEASE/SYMPTOM entities:
   - Diseases: diabetes, hypertension, fever, rheumatism, heartburn, cancer
   - Symptoms: headache, pain, inflammation, nausea

3. THERAPEUTIC RELATIONS (most important):
   - PLANT -> treats/alleviates/reduces/prevents/cures -> DISEASE/SYMPTOM
   - PLANT -> has_effect -> EFFECT (antidiabetic, anti-inflammatory, analgesic)
   - PLANT -> contains -> COMPOUND

4. DOSAGE entities:
   - Dose amounts: 500mg, 2 grams, 1 teaspoon
   - Frequency: twice daily, three times a day

5. METHOD entities (preparation/usage):
   - Boiled, extracted, infusion, decoction
   - Oral, topical application

6. COMPOUND entities (only if therapeutically relevant):
   - Active compounds: curcumin, gingerol, allicin

7. EFFECT entities (therapeutic effects):
   - antidiabetic, anti-inflammatory, analgesic, antipyretic

8. MECHANISM entities (only specific ones):
   - inhibition of COX-2 enzyme, stimulation of insulin secretion

SKIP ENTIRELY:
- Generic experimental terms: temperature, time, controlled conditions, experiment
- Laboratory methods unrelated to traditional use: chromatography, spectroscopy, analysis
- Statistical terms: p-value, significance, standard deviation
- Equipment/software names
- Pure numbers without context

RULES:
- Use only these types: PLANT, COMPOUND, DISEASE, SYMPTOM, EFFECT, MECHANISM, DOSAGE, METHOD
- Focus on therapeutic relationships
- Prioritize PLANT-DISEASE connections
- Include dosage and preparation methods
- Use standardized entity names
- Limit to max {max_entities} most relevant entities

Return format (no markdown, no code blocks):
{{"entities":[{{"name":"...","type":"..."}}],"relations":[{{"source":"...","relation":"...","target":"..."}}]}}"""


ENTITY_FIELDS = ("name", "type")
RELATION_FIELDS = ("source", "relation", "target")


def _as_entities(items: Any) -> List[Entity]:
    if not isinstance(items, list):
        return []
    return [
        Entity(name=str(item["name"]), type=str(item["type"]))
        for item in items
        if isinstance(item, dict) and item.get("name") and item.get("type")
    ]


def _as_relations(items: Any) -> List[Relation]:
    if not isinstance(items, list):
        return []
    return [
        Relation(
            source=str(item.get("source") or ""),
            relation=str(item.get("relation") or ""),
            target=str(item.get("target") or ""),
        )
        for item in items
        if isinstance(item, dict)
    ]


class KnowledgeGraphExtractor:
    """
    Extracts document metadata and per-chunk knowledge graphs using an LLM.
    """

    def __init__(self, llm: LLMClient, config: Optional[ExtractionConfig] = None):
        """
        Initialize the knowledge graph extractor.

        Args:
            llm: Text-completion client
            config: Extraction configuration
        """
        self.llm = llm
        self.config = config or ExtractionConfig()

    async def extract_metadata(self, first_pages_text: str) -> DocumentMetadata:
        """
        Extract title, authors, year and repeating header/footer text.

        Any failure yields empty metadata; cleaning then simply skips the
        header/footer rules.
        """
        prompt = METADATA_PROMPT.format(text=first_pages_text[:self.config.metadata_chars])
        try:
            content = await self.llm.complete(prompt, temperature=0.1, max_tokens=500)
            data = parse_json_response(content)
        except (CollaboratorUnavailable, ParseError) as e:
            logger.warning(f"Metadata extraction failed, continuing without it: {e}")
            return DocumentMetadata()

        if not isinstance(data, dict):
            logger.warning("Metadata response was not a JSON object")
            return DocumentMetadata()

        return DocumentMetadata(
            title=str(data.get("title") or ""),
            authors=str(data.get("authors") or ""),
            year=str(data.get("year") or ""),
            header_pattern=str(data.get("headerPattern") or ""),
            footer_pattern=str(data.get("footerPattern") or ""),
        )

    def _build_result(
        self,
        chunk_id: int,
        entities: List[Entity],
        relations: List[Relation]
    ) -> GraphExtractionResult:
        """Filter entities, cap their number and keep only relations between them."""
        kept = [e for e in entities if filter_entity(e)][:self.config.max_entities]
        return GraphExtractionResult(
            chunk_id=chunk_id,
            entities=kept,
            relations=filter_relations_by_entities(relations, kept),
        )

    def extract_graph_manually(self, chunk: Chunk, content: str) -> Optional[GraphExtractionResult]:
        """
        Fallback for unparseable responses: scan the raw text for entity and
        relation records.

        Returns:
            The filtered result, or None when nothing usable was found
        """
        entities = [Entity(**r) for r in scan_key_value_records(content, ENTITY_FIELDS)]
        relations = [Relation(**r) for r in scan_key_value_records(content, RELATION_FIELDS)]

        result = self._build_result(chunk.id, entities, relations)
        if result.entities or result.relations:
            logger.info(
                f"Recovered {len(result.entities)} entities and "
                f"{len(result.relations)} relations from chunk {chunk.id} by scanning"
            )
            return result
        return None

    async def extract_graph_from_chunk(self, chunk: Chunk) -> Optional[GraphExtractionResult]:
        """
        Extract entities and relations from a single chunk.

        Args:
            chunk: Chunk to process

        Returns:
            Filtered GraphExtractionResult, or None if the request failed or
            nothing could be recovered
        """
        prompt = GRAPH_EXTRACTION_PROMPT.format(
            text=chunk.text,
            max_entities=self.config.max_entities
        )
        try:
            content = await self.llm.complete(prompt, temperature=0.1, max_tokens=1000)
        except CollaboratorUnavailable as e:
            logger.error(f"Failed to extract graph from chunk {chunk.id}: {e}")
            return None

        try:
            graph_data = parse_json_response(content)
        except ParseError as e:
            logger.error(f"JSON parse error for chunk {chunk.id}: {e}")
            return self.extract_graph_manually(chunk, content)

        if not isinstance(graph_data, dict):
            return self.extract_graph_manually(chunk, content)

        return self._build_result(
            chunk.id,
            _as_entities(graph_data.get("entities")),
            _as_relations(graph_data.get("relations")),
        )

    async def extract_graphs_in_batches(
        self,
        chunks: Sequence[Chunk],
        batch_size: Optional[int] = None
    ) -> GraphExtractionBatch:
        """
        Extract graphs from many chunks.

        Chunks in a batch run concurrently; batches run one after another.
        Chunks whose extraction failed are left out of ``results``, so
        ``processed`` may be lower than ``total``.

        Args:
            chunks: Chunks to process
            batch_size: Concurrent requests per batch (default from config)

        Returns:
            GraphExtractionBatch with the successful results and counts
        """
        batch_size = batch_size or self.config.batch_size
        results: List[GraphExtractionResult] = []

        for start in range(0, len(chunks), batch_size):
            batch = chunks[start:start + batch_size]
            batch_results = await asyncio.gather(
                *(self.extract_graph_from_chunk(chunk) for chunk in batch)
            )
            results.extend(r for r in batch_results if r is not None)
            logger.info(
                f"Graph extraction: batch {start // batch_size + 1} done, "
                f"{len(results)}/{min(start + batch_size, len(chunks))} chunks succeeded"
            )

        if len(results) < len(chunks):
            logger.warning(f"Graph extraction lost {len(chunks) - len(results)} of {len(chunks)} chunks")

        return GraphExtractionBatch(results=results, processed=len(results), total=len(chunks))

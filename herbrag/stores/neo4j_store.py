"""
Neo4j graph database store.
"""
from typing import Any, Dict, List, Optional, Sequence, Tuple
import logging
import uuid

from neo4j import AsyncGraphDatabase

from . import GraphStore, THERAPEUTIC_RELATIONS, CONDITION_TYPES
from ..models import (
    DocumentMetadata, GraphEntity, GraphRelation, GraphExtractionResult,
)
from ..config import Neo4jConfig
from ..exceptions import CollaboratorUnavailable
from ..extractors.filters import (
    deduplicate_entities, deduplicate_relations, normalize_entity_name,
    build_entity_id_map, resolve_entity_id,
)

logger = logging.getLogger(__name__)

MAX_LOGGED_SKIPS = 10
CONDITION_LIMIT = 5
TRAVERSAL_LIMIT = 100

_RELATION_RETURN = """
    RETURN r.id AS id, r.relation AS relation,
           s {.id, .name, .type} AS source,
           t {.id, .name, .type} AS target
"""


def _entity_from_record(record: Dict[str, Any]) -> GraphEntity:
    return GraphEntity(id=record["id"], name=record["name"], type=record["type"])


def _relation_from_record(record: Dict[str, Any]) -> Optional[GraphRelation]:
    source, target = record.get("source"), record.get("target")
    if not source or not target:
        return None
    return GraphRelation(
        id=record["id"],
        relation=record["relation"],
        source=_entity_from_record(source),
        target=_entity_from_record(target),
    )


class Neo4jStore(GraphStore):
    """
    Neo4j store for journals and the herbal knowledge graph.

    Nodes are ``(:Journal)`` and ``(:Entity)``; an entity is unique per
    (normalized name, type). Extracted relations are ``[:RELATES]`` edges
    carrying the relation label, unique per (source, label, target).
    """

    def __init__(self, config: Optional[Neo4jConfig] = None):
        """
        Initialize Neo4j store.

        Args:
            config: Neo4j configuration
        """
        self.config = config or Neo4jConfig()
        self._driver = None

    @property
    def driver(self):
        """Lazy load Neo4j driver."""
        if self._driver is None:
            self._driver = AsyncGraphDatabase.driver(
                self.config.uri,
                auth=(self.config.user, self.config.password)
            )
            logger.info(f"Connected to Neo4j at {self.config.uri}")
        return self._driver

    async def _run(self, query: str, parameters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Run a query in its own session and return the records as dicts."""
        try:
            async with self.driver.session(database=self.config.database) as session:
                result = await session.run(query, parameters or {})
                return await result.data()
        except Exception as e:
            raise CollaboratorUnavailable("neo4j", str(e)) from e

    async def initialize(self) -> None:
        """Create constraints and indexes."""
        await self.driver.verify_connectivity()
        statements = [
            "CREATE CONSTRAINT entity_id IF NOT EXISTS FOR (e:Entity) REQUIRE e.id IS UNIQUE",
            "CREATE CONSTRAINT journal_id IF NOT EXISTS FOR (j:Journal) REQUIRE j.id IS UNIQUE",
            "CREATE INDEX entity_key_idx IF NOT EXISTS FOR (e:Entity) ON (e.normalized_name, e.type)",
            "CREATE INDEX entity_type_idx IF NOT EXISTS FOR (e:Entity) ON (e.type)",
        ]
        for statement in statements:
            try:
                await self._run(statement)
            except CollaboratorUnavailable as e:
                logger.debug(f"Schema statement skipped: {e}")

        logger.info("Neo4j indexes and constraints initialized")

    async def store_journal(self, metadata: DocumentMetadata, file_path: str) -> str:
        """
        Create a Journal node.

        Args:
            metadata: Extracted bibliographic metadata
            file_path: Source PDF path

        Returns:
            The new journal id
        """
        journal_id = str(uuid.uuid4())
        await self._run("""
            CREATE (j:Journal {id: $id})
            SET j.title = $title, j.author = $author, j.year = $year,
                j.file_path = $file_path, j.created_at = datetime()
        """, {
            "id": journal_id,
            "title": metadata.title,
            "author": metadata.authors,
            "year": metadata.year,
            "file_path": file_path,
        })
        logger.info(f"Created journal node {journal_id} for '{metadata.title or file_path}'")
        return journal_id

    async def store_graphs(
        self,
        journal_id: str,
        results: Sequence[GraphExtractionResult]
    ) -> Tuple[int, int]:
        """
        Store extracted graphs.

        Entities are deduplicated across all chunks and upserted; relation
        endpoints are then resolved to stored ids. Relations whose endpoints
        cannot be resolved are skipped.

        Args:
            journal_id: Journal the graphs were extracted from
            results: Per-chunk extraction results

        Returns:
            (entities stored, relations stored)
        """
        entities = deduplicate_entities(e for r in results for e in r.entities)
        if not entities:
            logger.info("No entities to store")
            return 0, 0

        records = await self._run("""
            UNWIND $entities AS ent
            MERGE (e:Entity {normalized_name: ent.normalized_name, type: ent.type})
            ON CREATE SET e.id = randomUUID(), e.name = ent.name
            WITH e
            MATCH (j:Journal {id: $journal_id})
            MERGE (e)-[:MENTIONED_IN]->(j)
            RETURN e.id AS id, e.name AS name, e.type AS type
        """, {
            "journal_id": journal_id,
            "entities": [
                {"name": e.name, "type": e.type, "normalized_name": normalize_entity_name(e.name)}
                for e in entities
            ],
        })
        id_map = build_entity_id_map(_entity_from_record(r) for r in records)

        # Relations carry names only; take the type from the extracted entity
        types = {normalize_entity_name(e.name): e.type for e in entities}

        relations = deduplicate_relations(rel for r in results for rel in r.relations)
        rows = []
        skipped = 0
        for rel in relations:
            source_id = resolve_entity_id(rel.source, types.get(normalize_entity_name(rel.source), ""), id_map)
            target_id = resolve_entity_id(rel.target, types.get(normalize_entity_name(rel.target), ""), id_map)
            if not source_id or not target_id:
                skipped += 1
                if skipped <= MAX_LOGGED_SKIPS:
                    missing = "source" if not source_id else "target"
                    logger.warning(
                        f"Skipping relation {rel.source} -[{rel.relation}]-> {rel.target}: "
                        f"{missing} entity not found"
                    )
                continue
            rows.append({
                "source_id": source_id,
                "target_id": target_id,
                "relation": rel.relation.strip(),
            })

        if skipped:
            logger.warning(f"Skipped {skipped} of {len(relations)} relations")

        stored_relations = 0
        if rows:
            counts = await self._run("""
                UNWIND $relations AS rel
                MATCH (s:Entity {id: rel.source_id})
                MATCH (t:Entity {id: rel.target_id})
                MERGE (s)-[r:RELATES {relation: rel.relation}]->(t)
                ON CREATE SET r.id = randomUUID(), r.journal_id = $journal_id
                RETURN count(r) AS count
            """, {"journal_id": journal_id, "relations": rows})
            stored_relations = counts[0]["count"] if counts else 0

        logger.info(
            f"Stored graph for journal {journal_id}: "
            f"{len(records)} entities, {stored_relations} relations"
        )
        return len(records), stored_relations

    async def find_matching_entities(
        self,
        name: str,
        entity_type: Optional[str] = None,
        limit: int = 10
    ) -> List[GraphEntity]:
        records = await self._run("""
            MATCH (e:Entity)
            WHERE toLower(e.name) CONTAINS toLower($name)
              AND ($type IS NULL OR e.type = $type)
            RETURN e.id AS id, e.name AS name, e.type AS type
            LIMIT $limit
        """, {
            "name": name,
            "type": entity_type.upper() if entity_type else None,
            "limit": limit,
        })
        return [_entity_from_record(r) for r in records]

    async def find_herbs_for_condition(self, name: str) -> List[GraphEntity]:
        """
        Find plants that treat a condition.

        Up to five diseases or symptoms whose name contains ``name`` are
        matched, then every PLANT linked to them by a therapeutic relation.
        """
        records = await self._run("""
            MATCH (c:Entity)
            WHERE toLower(c.name) CONTAINS toLower($name) AND c.type IN $condition_types
            WITH c LIMIT $condition_limit
            MATCH (p:Entity {type: 'PLANT'})-[r:RELATES]->(c)
            WHERE toLower(r.relation) IN $relations
            RETURN DISTINCT p.id AS id, p.name AS name, p.type AS type
        """, {
            "name": name,
            "condition_types": list(CONDITION_TYPES),
            "condition_limit": CONDITION_LIMIT,
            "relations": list(THERAPEUTIC_RELATIONS),
        })
        return [_entity_from_record(r) for r in records]

    async def get_relations_from_sources(self, ids: Sequence[str]) -> List[GraphRelation]:
        if not ids:
            return []
        records = await self._run("""
            MATCH (s:Entity)-[r:RELATES]->(t:Entity)
            WHERE s.id IN $ids
        """ + _RELATION_RETURN, {"ids": list(ids)})
        return [rel for rel in map(_relation_from_record, records) if rel]

    async def get_relations_to_targets(
        self,
        ids: Sequence[str],
        relation_types: Optional[Sequence[str]] = None
    ) -> List[GraphRelation]:
        if not ids:
            return []
        records = await self._run("""
            MATCH (s:Entity)-[r:RELATES]->(t:Entity)
            WHERE t.id IN $ids
              AND ($relations IS NULL OR toLower(r.relation) IN $relations)
        """ + _RELATION_RETURN, {
            "ids": list(ids),
            "relations": [r.lower() for r in relation_types] if relation_types else None,
        })
        return [rel for rel in map(_relation_from_record, records) if rel]

    async def traverse_graph(self, ids: Sequence[str], max_hops: int = 2) -> List[GraphRelation]:
        """
        Collect relations on outgoing paths of up to ``max_hops`` edges from
        the given entities (herb -> compound -> effect).
        """
        # Variable-length bounds cannot be parameterised
        hops = int(max_hops)
        if not ids or hops < 1:
            return []

        records = await self._run(f"""
            MATCH path = (start:Entity)-[:RELATES*1..{hops}]->(:Entity)
            WHERE start.id IN $ids
            UNWIND relationships(path) AS r
            WITH DISTINCT r
            WITH r, startNode(r) AS s, endNode(r) AS t
            {_RELATION_RETURN}
            LIMIT $limit
        """, {"ids": list(ids), "limit": TRAVERSAL_LIMIT})
        return [rel for rel in map(_relation_from_record, records) if rel]

    async def clear(self) -> None:
        """Delete all journals, entities and relations."""
        await self._run("MATCH (n) WHERE n:Entity OR n:Journal DETACH DELETE n")
        logger.info("Cleared all data from Neo4j")
        await self.initialize()

    async def close(self) -> None:
        """Close the driver connection."""
        if self._driver:
            await self._driver.close()
            self._driver = None
            logger.info("Closed Neo4j connection")

    async def get_stats(self) -> Dict[str, int]:
        """Get database statistics."""
        records = await self._run("""
            CALL { MATCH (j:Journal) RETURN count(j) AS journal_count }
            CALL { MATCH (e:Entity) RETURN count(e) AS entity_count }
            CALL { MATCH ()-[r:RELATES]->() RETURN count(r) AS rel_count }
            RETURN journal_count, entity_count, rel_count
        """)
        if records:
            record = records[0]
            return {
                "journals": record["journal_count"],
                "entities": record["entity_count"],
                "relations": record["rel_count"],
            }
        return {"journals": 0, "entities": 0, "relations": 0}

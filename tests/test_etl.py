"""Tests for the ingestion pipeline with all collaborators faked."""

import json
from unittest.mock import AsyncMock

import pytest

from herbrag.config import AppConfig
from herbrag.etl import IngestionPipeline
from herbrag.exceptions import ValidationError
from herbrag.models import Document, JournalInfo

from fakes import FakeEmbedder, FakeLLM

METADATA = json.dumps({
    "title": "Ginger and Nausea",
    "authors": "A. Author",
    "year": "2020",
    "headerPattern": "",
    "footerPattern": "",
})
GRAPH = json.dumps({
    "entities": [{"name": "ginger", "type": "PLANT"}, {"name": "nausea", "type": "SYMPTOM"}],
    "relations": [{"source": "ginger", "relation": "treats", "target": "nausea"}],
})


def _pipeline(tmp_path, llm=None):
    config = AppConfig()
    config.docs_dir = str(tmp_path)
    vector_store = AsyncMock()
    vector_store.store_chunks.side_effect = lambda journal_id, journal, chunks, vectors: len(chunks)
    graph_store = AsyncMock()
    graph_store.store_journal.return_value = "j1"
    graph_store.store_graphs.return_value = (2, 1)
    pipeline = IngestionPipeline(
        config,
        llm=llm or FakeLLM({"extract metadata": METADATA, "Extract entities and relations": GRAPH}),
        embedder=FakeEmbedder(),
        vector_store=vector_store,
        graph_store=graph_store,
    )
    return pipeline, vector_store, graph_store


def _document():
    body = " ".join(f"Ginger sample sentence number {i} reduces nausea." for i in range(30))
    return Document(name="ginger.pdf", path="/docs/ginger.pdf", pages=[f"Ginger and Nausea\nABSTRACT\n{body}"])


@pytest.mark.asyncio
async def test_ingest_document(tmp_path):
    pipeline, vector_store, graph_store = _pipeline(tmp_path)

    result = await pipeline.ingest_document(_document())

    assert result.journal_id == "j1"
    assert result.embeddings_count == 3
    assert (result.entities_count, result.relations_count) == (2, 1)
    assert (result.graphs_processed, result.graphs_total) == (3, 3)

    journal_id, journal, chunks, vectors = vector_store.store_chunks.call_args.args
    assert journal_id == "j1"
    assert journal == JournalInfo(title="Ginger and Nausea", author="A. Author", year="2020")
    assert len(chunks) == len(vectors) == 3
    assert "Judul" not in chunks[0].text

    metadata, file_path = graph_store.store_journal.call_args.args
    assert metadata.title == "Ginger and Nausea"
    assert file_path == "/docs/ginger.pdf"


@pytest.mark.asyncio
async def test_ingest_document_without_text_is_rejected(tmp_path):
    pipeline, _, _ = _pipeline(tmp_path)
    with pytest.raises(ValidationError, match="no extractable text"):
        await pipeline.ingest_document(Document(name="empty.pdf", pages=["", "  "]))


@pytest.mark.asyncio
async def test_ingest_document_without_chunks_is_rejected(tmp_path):
    pipeline, vector_store, _ = _pipeline(tmp_path)
    with pytest.raises(ValueError, match="no chunks"):
        await pipeline.ingest_document(Document(name="short.pdf", pages=["ABSTRACT"]))
    vector_store.store_chunks.assert_not_called()


@pytest.mark.asyncio
async def test_ingest_document_survives_metadata_failure(tmp_path):
    llm = FakeLLM({"extract metadata": "not json at all", "Extract entities and relations": GRAPH})
    pipeline, vector_store, _ = _pipeline(tmp_path, llm=llm)

    await pipeline.ingest_document(_document())

    journal = vector_store.store_chunks.call_args.args[1]
    assert journal.title == "ginger.pdf"


@pytest.mark.asyncio
async def test_process_empty_directory(tmp_path):
    pipeline, vector_store, graph_store = _pipeline(tmp_path)

    stats = await pipeline.process_directory()

    assert stats["documents_found"] == 0
    assert stats["documents_processed"] == 0
    vector_store.initialize.assert_awaited_once()
    graph_store.initialize.assert_awaited_once()


@pytest.mark.asyncio
async def test_process_directory_skips_unreadable_files(tmp_path):
    (tmp_path / "broken.pdf").write_bytes(b"not a pdf")
    pipeline, _, _ = _pipeline(tmp_path)

    stats = await pipeline.process_directory(clear_existing=True)

    assert stats["documents_found"] == 1
    assert stats["documents_failed"] == 1
    assert stats["documents_processed"] == 0

"""Tests for the hybrid vector + graph search pipeline."""

import pytest

from herbrag.config import LLMConfig
from herbrag.exceptions import CollaboratorUnavailable
from herbrag.llm import LLMClient
from herbrag.models import GraphEntity, JournalInfo, SearchSummary, VectorSearchResult
from herbrag.search import ANSWER_ERROR, NO_ANSWER, HybridSearchEngine

from fakes import FakeEmbedder, FakeGraphStore, FakeLLM, FakeVectorStore, make_relation

ENTITY_MARKER = "Extract medical/herbal entities"
ANSWER_MARKER = "You are a herbal medicine expert"

GINGER = GraphEntity(id="g1", name="ginger", type="PLANT")
TURMERIC = GraphEntity(id="t1", name="turmeric", type="PLANT")
HEADACHE = GraphEntity(id="h1", name="headache", type="SYMPTOM")
GINGEROL = GraphEntity(id="c1", name="gingerol", type="COMPOUND")
ANALGESIC = GraphEntity(id="e1", name="analgesic", type="effect")
MIGRAINE = GraphEntity(id="d1", name="migraine", type="DISEASE")
INDONESIA = GraphEntity(id="l1", name="indonesia", type="LOCATION")


def _graph_store(**kwargs):
    relations = [
        make_relation("r1", GINGER, "treats", HEADACHE),
        make_relation("r2", GINGER, "contains", GINGEROL),
        make_relation("r3", GINGER, "has_effect", ANALGESIC),
        make_relation("r4", GINGER, "treats", MIGRAINE),
        make_relation("r5", GINGER, "grows_in", INDONESIA),
    ]
    entities = [GINGER, TURMERIC, HEADACHE, GINGEROL, ANALGESIC, MIGRAINE, INDONESIA]
    return FakeGraphStore(entities, relations, **kwargs)


def _vector_store(**kwargs):
    results = [
        VectorSearchResult(id="v1", text="a" * 500 + "b" * 300, journal_id="j1", similarity=0.91),
        VectorSearchResult(id="v2", text="Ginger relieves tension headache.", journal_id="j1", similarity=0.85),
    ]
    journals = {
        "v1": JournalInfo(title="Ginger Review", author="A. Author", year="2020"),
        "v2": JournalInfo(title="Ginger Review", author="A. Author", year="2020"),
    }
    return FakeVectorStore(results, journals, **kwargs)


def _engine(llm, vector_store=None, graph_store=None, embedder=None):
    return HybridSearchEngine(
        llm=llm,
        embedder=embedder or FakeEmbedder(),
        vector_store=vector_store or _vector_store(),
        graph_store=graph_store or _graph_store(),
    )


def _llm(entities='[{"name":"headache","type":"SYMPTOM"}]', answer="Ginger helps with headache."):
    return FakeLLM({ENTITY_MARKER: entities, ANSWER_MARKER: answer})


@pytest.mark.asyncio
async def test_headache_query_finds_ginger_and_its_relations():
    llm = _llm()
    result = await _engine(llm).hybrid_search("what herb for headache")

    assert [(e.name, e.type) for e in result.query_entities] == [("headache", "SYMPTOM")]
    assert [h.name for h in result.graph_results.herbs] == ["ginger"]
    assert [r.id for r in result.graph_results.all_relations] == ["r2", "r3", "r4"]
    assert [r.target.name for r in result.graph_results.compounds] == ["gingerol"]
    assert [r.target.name for r in result.graph_results.effects] == ["analgesic"]
    assert result.summary == SearchSummary(total_chunks=2, total_herbs=1, total_compounds=1, total_effects=1)


@pytest.mark.asyncio
async def test_vector_results_are_enriched_in_one_call():
    vector_store = _vector_store()
    result = await _engine(_llm(), vector_store=vector_store).hybrid_search("what herb for headache")

    assert vector_store.journal_calls == [["v1", "v2"]]
    assert result.vector_results[0].journal.title == "Ginger Review"


@pytest.mark.asyncio
async def test_answer_prompt_and_sources():
    llm = _llm()
    result = await _engine(llm).hybrid_search("what herb for headache")

    prompt = llm.prompts_containing(ANSWER_MARKER)[0]
    assert "[Chunk 1]: " + "a" * 500 in prompt
    assert "b" * 10 not in prompt
    assert "[Chunk 2]: Ginger relieves tension headache." in prompt
    assert "Relevant Herbs: ginger" in prompt
    assert "- ginger contains gingerol (COMPOUND)" in prompt
    assert "indonesia" not in prompt

    # Both chunks cite the same journal, so it is listed once
    assert result.answer == (
        "Ginger helps with headache.\n\n**Sources:**\n[1] Ginger Review. A. Author. 2020."
    )


@pytest.mark.asyncio
async def test_sources_are_capped():
    results = [
        VectorSearchResult(id=f"v{i}", text=f"Excerpt {i}.", similarity=0.9) for i in range(5)
    ]
    journals = {f"v{i}": JournalInfo(title=f"Journal {i}", author="X", year="2021") for i in range(5)}
    engine = _engine(_llm(), vector_store=FakeVectorStore(results, journals))

    result = await engine.hybrid_search("what herb for headache", top_k=5)

    assert "[3] Journal 2. X. 2021." in result.answer
    assert "[4]" not in result.answer


@pytest.mark.asyncio
async def test_relations_in_prompt_are_capped():
    herb = GraphEntity(id="p1", name="sambiloto", type="PLANT")
    fever = GraphEntity(id="f1", name="fever", type="SYMPTOM")
    relations = [make_relation("t", herb, "treats", fever)] + [
        make_relation(f"c{i}", herb, "contains", GraphEntity(id=f"k{i}", name=f"compound {i}", type="COMPOUND"))
        for i in range(20)
    ]
    graph_store = FakeGraphStore([herb, fever], relations)
    llm = _llm(entities='[{"name":"fever","type":"SYMPTOM"}]')

    result = await _engine(llm, graph_store=graph_store).hybrid_search("herb for fever")

    prompt = llm.prompts_containing(ANSWER_MARKER)[0]
    assert prompt.count("- sambiloto contains") == 15
    assert result.summary.total_compounds == 20


@pytest.mark.asyncio
async def test_herbs_are_deduplicated_across_entities():
    llm = _llm(entities='[{"name":"headache","type":"SYMPTOM"},{"name":"ginger","type":"PLANT"}]')
    graph_store = _graph_store()

    result = await _engine(llm, graph_store=graph_store).hybrid_search("ginger for headache")

    assert [h.id for h in result.graph_results.herbs] == ["g1"]
    assert ("match", "ginger", "PLANT") in graph_store.calls
    assert ("herbs", "headache") in graph_store.calls


@pytest.mark.asyncio
async def test_entity_extraction_failure_degrades_to_vector_only():
    llm = FakeLLM({
        ENTITY_MARKER: CollaboratorUnavailable("llm", "HTTP 500"),
        ANSWER_MARKER: "Answer from excerpts.",
    })
    result = await _engine(llm).hybrid_search("what herb for headache")

    assert result.query_entities == []
    assert result.graph_results.herbs == []
    assert result.summary.total_chunks == 2
    assert result.answer.startswith("Answer from excerpts.")


@pytest.mark.asyncio
async def test_malformed_entity_response_gives_no_entities():
    llm = _llm(entities='[{"name":"headache"}, "nonsense", {"type":"PLANT"}]')
    result = await _engine(llm).hybrid_search("what herb for headache")
    assert result.query_entities == []


@pytest.mark.asyncio
async def test_vector_failure_keeps_graph_results():
    engine = _engine(_llm(), vector_store=_vector_store(fail=True))
    result = await engine.hybrid_search("what herb for headache")

    assert result.vector_results == []
    assert [h.name for h in result.graph_results.herbs] == ["ginger"]
    assert "**Sources:**" not in result.answer


@pytest.mark.asyncio
async def test_embedding_failure_keeps_graph_results():
    engine = _engine(_llm(), embedder=FakeEmbedder(fail=True))
    result = await engine.hybrid_search("what herb for headache")

    assert result.vector_results == []
    assert result.summary.total_herbs == 1


@pytest.mark.asyncio
async def test_failing_lookup_for_one_entity_does_not_abort():
    llm = _llm(entities='[{"name":"migraine","type":"DISEASE"},{"name":"ginger","type":"PLANT"}]')
    graph_store = _graph_store(failing_names=["migraine"])

    result = await _engine(llm, graph_store=graph_store).hybrid_search("ginger for migraine")

    assert [h.name for h in result.graph_results.herbs] == ["ginger"]


@pytest.mark.asyncio
async def test_answer_failure_returns_apology():
    llm = FakeLLM({
        ENTITY_MARKER: '[{"name":"headache","type":"SYMPTOM"}]',
        ANSWER_MARKER: CollaboratorUnavailable("llm", "timeout"),
    })
    result = await _engine(llm).hybrid_search("what herb for headache")

    assert result.answer == ANSWER_ERROR
    assert result.summary.total_herbs == 1


@pytest.mark.asyncio
async def test_empty_answer_uses_placeholder():
    result = await _engine(_llm(answer="")).hybrid_search("what herb for headache")
    assert result.answer.startswith(NO_ANSWER)


@pytest.mark.asyncio
async def test_no_evidence_still_gives_complete_result():
    llm = _llm(entities="[]", answer="I could not find relevant information.")
    engine = _engine(llm, vector_store=FakeVectorStore(), graph_store=FakeGraphStore([], []))

    result = await engine.hybrid_search("what herb for toothache")

    assert result.vector_results == []
    assert result.graph_results.herbs == []
    assert result.graph_results.all_relations == []
    assert result.summary == SearchSummary()
    assert result.answer == "I could not find relevant information."
    prompt = llm.prompts_containing(ANSWER_MARKER)[0]
    assert "Relevant Herbs: None found" in prompt
    assert "No relations found" in prompt


@pytest.mark.asyncio
async def test_repeated_searches_give_identical_summary():
    engine = _engine(_llm())
    first = await engine.hybrid_search("what herb for headache")
    second = await engine.hybrid_search("what herb for headache")
    assert first.summary == second.summary
    assert first.to_dict()["summary"] == {
        "total_chunks": 2, "total_herbs": 1, "total_compounds": 1, "total_effects": 1,
    }


@pytest.mark.asyncio
async def test_unconfigured_llm_degrades_to_vector_results_and_apology():
    llm = LLMClient(LLMConfig(mistral_api_key=None))
    result = await _engine(llm).hybrid_search("what herb for headache")

    assert result.query_entities == []
    assert result.graph_results.herbs == []
    assert result.summary.total_chunks == 2
    assert result.answer == ANSWER_ERROR


@pytest.mark.asyncio
async def test_journal_lookup_failure_keeps_vector_hits():
    vector_store = _vector_store(journals_fail=True)
    result = await _engine(_llm(), vector_store=vector_store).hybrid_search("what herb for headache")

    assert [r.id for r in result.vector_results] == ["v1", "v2"]
    assert all(r.journal is None for r in result.vector_results)
    assert result.summary.total_chunks == 2
    assert "**Sources:**" not in result.answer

"""Tests for the search orchestrator and its degradation paths."""

import asyncio
import logging

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from conftest import FailingStore, FakeSemanticScorer, FlakyStore, make_material
from studyshelf.search.errors import FallbackExhausted, RetrievalError
from studyshelf.search.search_engine import SearchEngine, MODE_FALLBACK, MODE_HYBRID, MODE_LEXICAL
from studyshelf.search.semantic_scorer import SemanticScorer


@pytest.fixture
def course_store(store):
    store.add_materials([
        make_material(1, "Calculus I notes", day=1, category="Mathematics", sub_category="Notes",
                      tags=["calculus"]),
        make_material(2, "Physics intro", day=2, category="Physics", sub_category="Textbook"),
        make_material(3, "Calculus II problem sets", day=3, category="Mathematics",
                      sub_category="Assignment", description="Integration practice"),
        make_material(4, "Integration by parts cheat sheet", day=4, category="Mathematics",
                      sub_category="Reference", description="Calculus integration rules"),
    ])
    return store


@pytest.mark.asyncio
async def test_lexical_only_drops_non_matching_candidates(store, no_semantic):
    store.add_materials([
        make_material(1, "Calculus I notes", day=1),
        make_material(2, "Physics intro", day=2),
    ])
    engine = SearchEngine(store, semantic_scorer=no_semantic)

    results = await engine.search("calculus")

    assert [m.title for m in results] == ["Calculus I notes"]


@pytest.mark.asyncio
async def test_lexical_only_blended_score_equals_normalized_lexical(course_store, no_semantic):
    engine = SearchEngine(course_store, semantic_scorer=no_semantic)

    outcome = await engine.search_with_details("calculus integration")

    assert outcome.mode == MODE_LEXICAL
    assert not outcome.semantic_used
    assert outcome.scored
    for candidate in outcome.scored:
        assert candidate.blended_score == candidate.lexical_norm
        assert candidate.semantic_score is None
    assert outcome.scored[0].lexical_norm == 1.0


@pytest.mark.asyncio
async def test_results_are_stored_records_in_ranked_order(course_store, no_semantic):
    engine = SearchEngine(course_store, semantic_scorer=no_semantic)

    results = await engine.search("integration")

    # "Integration by parts cheat sheet": title 2.0 + description 1.0
    # "Calculus II problem sets": description 1.0
    assert [m.id for m in results] == ["4", "3"]
    assert results[0].to_dict()["description"] == "Calculus integration rules"


@pytest.mark.asyncio
async def test_semantic_scores_are_blended(course_store):
    scorer = FakeSemanticScorer({"Calculus I notes": 0.8})
    engine = SearchEngine(course_store, semantic_scorer=scorer)

    outcome = await engine.search_with_details("calculus")

    assert outcome.mode == MODE_HYBRID
    assert outcome.semantic_used
    assert len(scorer.calls) == 1

    by_id = {c.material.id: c for c in outcome.scored}
    notes = by_id["1"]
    assert notes.blended_score == pytest.approx(0.85 * 0.8 + 0.15 * notes.lexical_norm)


@pytest.mark.asyncio
async def test_semantic_service_failure_degrades_to_lexical(course_store, semantic_error):
    scorer = FakeSemanticScorer(error=semantic_error)
    engine = SearchEngine(course_store, semantic_scorer=scorer)

    outcome = await engine.search_with_details("calculus")

    assert outcome.mode == MODE_LEXICAL
    assert not outcome.semantic_used
    assert outcome.results
    for candidate in outcome.scored:
        assert candidate.blended_score == candidate.lexical_norm


@pytest.mark.asyncio
async def test_http_503_from_similarity_service_still_returns_ranked_results(course_store):
    async def handler(request):
        return web.Response(status=503, text="Service Unavailable")

    app = web.Application()
    app.router.add_post('/models/{owner}/{name}', handler)

    async with TestServer(app) as server:
        scorer = SemanticScorer(api_key="hf_test", endpoint=str(server.make_url('/models')))
        engine = SearchEngine(course_store, semantic_scorer=scorer)
        outcome = await engine.search_with_details("calculus")

    assert outcome.mode == MODE_LEXICAL
    assert [m.id for m in outcome.results] == ["1", "3", "4"]
    for candidate in outcome.scored:
        assert candidate.blended_score == candidate.lexical_norm


@pytest.mark.asyncio
async def test_no_credential_makes_no_network_call(course_store):
    scorer = SemanticScorer(api_key="", endpoint="http://127.0.0.1:1/models")
    engine = SearchEngine(course_store, semantic_scorer=scorer)

    outcome = await engine.search_with_details("calculus")

    assert outcome.mode == MODE_LEXICAL
    assert outcome.results


@pytest.mark.asyncio
async def test_limit_returns_top_results_in_descending_order(store, no_semantic):
    # Every title matches; descriptions and tags spread the scores with ties
    store.add_materials([
        make_material(i, f"Algebra {i}", day=i + 1, description="algebra" if i % 2 else None,
                      tags=["algebra"] if i % 3 == 0 else None)
        for i in range(10)
    ])
    engine = SearchEngine(store, semantic_scorer=no_semantic)

    outcome = await engine.search_with_details("algebra", limit=5, candidate_limit=100)

    assert len(outcome.results) == 5
    blended = [c.blended_score for c in outcome.scored]
    assert blended == sorted(blended, reverse=True)

    # Ties keep recency order (newest first)
    created = {m.id: m.created_at for m in outcome.results}
    for first, second in zip(outcome.scored, outcome.scored[1:]):
        if first.blended_score == second.blended_score:
            assert created[first.material.id] > created[second.material.id]


@pytest.mark.asyncio
async def test_result_length_never_exceeds_limit_or_pool(course_store, no_semantic):
    engine = SearchEngine(course_store, semantic_scorer=no_semantic)

    for limit in (1, 2, 3, 10):
        for candidate_limit in (1, 2, 4, 100):
            results = await engine.search("calculus", limit=limit, candidate_limit=candidate_limit)
            assert len(results) <= min(limit, candidate_limit)


@pytest.mark.asyncio
async def test_unmatched_query_returns_recent_materials(course_store, no_semantic):
    engine = SearchEngine(course_store, semantic_scorer=no_semantic)

    results = await engine.search("xyz123")

    # Nothing scores above zero, so the filter keeps the whole recency pool
    assert [m.id for m in results] == ["4", "3", "2", "1"]


@pytest.mark.asyncio
async def test_category_filters_apply(course_store, no_semantic):
    engine = SearchEngine(course_store, semantic_scorer=no_semantic)

    results = await engine.search("calculus", category="Mathematics", sub_category="Notes")

    assert [m.id for m in results] == ["1"]


@pytest.mark.asyncio
async def test_empty_store_returns_empty_list(store, no_semantic):
    engine = SearchEngine(store, semantic_scorer=no_semantic)
    assert await engine.search("calculus") == []


@pytest.mark.asyncio
async def test_retrieval_failure_falls_back_to_plain_search(course_store, no_semantic):
    flaky = FlakyStore(course_store, failures=1)
    engine = SearchEngine(flaky, semantic_scorer=no_semantic)

    outcome = await engine.search_with_details("calculus")

    assert outcome.mode == MODE_FALLBACK
    assert not outcome.semantic_used
    # Unscored, newest first
    assert [m.id for m in outcome.results] == ["4", "3", "1"]
    assert flaky.queries[-1].limit == 50


@pytest.mark.asyncio
async def test_unexpected_pipeline_error_falls_back_to_plain_search(course_store, no_semantic):
    engine = SearchEngine(course_store, semantic_scorer=no_semantic)

    def broken_rank(scored, limit):
        raise RuntimeError("sort exploded")

    engine.blender.rank = broken_rank

    outcome = await engine.search_with_details("calculus")

    assert outcome.mode == MODE_FALLBACK
    assert [m.id for m in outcome.results] == ["4", "3", "1"]


@pytest.mark.asyncio
async def test_plain_search_failure_is_raised_to_caller(no_semantic):
    engine = SearchEngine(FailingStore(), semantic_scorer=no_semantic)

    with pytest.raises(FallbackExhausted) as exc_info:
        await engine.search("calculus")

    assert isinstance(exc_info.value.last_error, RetrievalError)


@pytest.mark.asyncio
async def test_cancelled_search_yields_nothing(course_store):
    started = asyncio.Event()

    class SlowScorer(FakeSemanticScorer):
        async def score(self, query, texts):
            started.set()
            await asyncio.sleep(10)
            return [0.0] * len(texts)

    engine = SearchEngine(course_store, semantic_scorer=SlowScorer())
    task = asyncio.ensure_future(engine.search("calculus"))
    await started.wait()
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task


@pytest.mark.asyncio
async def test_ranking_config_overrides(course_store):
    scorer = FakeSemanticScorer({"Calculus II problem sets": 0.2})
    engine = SearchEngine(
        course_store,
        semantic_scorer=scorer,
        ranking_config={"min_semantic_score": 0.1, "min_lexical_score": 2.0}
    )

    results = await engine.search("calculus")

    assert [m.id for m in results] == ["3"]


@pytest.mark.asyncio
async def test_non_ascii_query_ranks_matching_material(store, no_semantic):
    store.add_materials([
        make_material(1, "Économie politique", day=1, category="Economics"),
        make_material(2, "Physics intro", day=2, category="Physics"),
    ])
    engine = SearchEngine(store, semantic_scorer=no_semantic)

    for query in ["Économie", "éCONOMIE"]:
        outcome = await engine.search_with_details(query)
        assert outcome.mode == MODE_LEXICAL
        assert [m.id for m in outcome.results] == ["1"]


@pytest.mark.asyncio
async def test_plain_search_matches_non_ascii_titles(store, no_semantic):
    store.add_materials([
        make_material(1, "Économie politique", day=1),
        make_material(2, "Physics intro", day=2),
    ])

    for query in ["Économie", "ÉCONOMIE politique"]:
        engine = SearchEngine(FlakyStore(store, failures=1), semantic_scorer=no_semantic)
        outcome = await engine.search_with_details(query)
        assert outcome.mode == MODE_FALLBACK
        assert [m.id for m in outcome.results] == ["1"]


@pytest.mark.asyncio
async def test_missing_credential_is_logged_on_every_search(course_store, no_semantic, caplog, monkeypatch):
    monkeypatch.setattr(logging.getLogger('search'), 'propagate', True)
    engine = SearchEngine(course_store, semantic_scorer=no_semantic)

    with caplog.at_level(logging.WARNING, logger='search'):
        await engine.search("calculus")
        await engine.search("physics")

    warnings = [r for r in caplog.records if r.levelno == logging.WARNING and "not configured" in r.getMessage()]
    assert len(warnings) == 2
    assert "mode lexical" in warnings[0].getMessage()

# © 2026 Crest Advisory Group LLC. All rights reserved.
# PROPRIETARY AND CONFIDENTIAL. Unauthorized copying, distribution, or use is strictly prohibited.

"""
Unit tests for the search workflow: graph wiring and the SearchPipeline
request path with stubbed collaborators.
"""

import asyncio

from caselaw_search.agent.agent import SearchPipeline, get_pipeline_info
from caselaw_search.agent.graph import create_search_graph
from caselaw_search.agent.nodes import SearchNodes
from caselaw_search.services.retrieval.generator import AnswerSynthesizer
from caselaw_search.services.retrieval.query_analyzer import QueryAnalyzer
from tests.helpers import StubCaseStore, StubEmbedder, StubVectorSearch, fake_chat_model, make_candidate, make_passage


def _pipeline(settings, store=None, vector=None, answer="Answer [1].") -> SearchPipeline:
    settings.QUERY_ANALYSIS_ENABLED = False
    return SearchPipeline(
        settings=settings,
        store=store or StubCaseStore([make_passage("l1", case_id="D", text="negligence proved")]),
        embedder=StubEmbedder(),
        vector=vector or StubVectorSearch({settings.MATCH_THRESHOLD: [make_candidate("v1", 0.8, case_id="A")]}),
        analyzer=QueryAnalyzer(settings),
        synthesizer=AnswerSynthesizer(settings, llm=fake_chat_model(answer)),
        scorer=None,
    )


class TestGraph:
    def test_three_stage_workflow(self, settings) -> None:
        pipeline = _pipeline(settings)
        nodes = SearchNodes(QueryAnalyzer(settings), pipeline.retrieval, AnswerSynthesizer(settings))
        graph = create_search_graph(nodes)
        assert set(graph.nodes) == {"analyze", "search", "synthesize"}


class TestSearchPipeline:
    def test_run_search_returns_response(self, settings) -> None:
        response = asyncio.run(_pipeline(settings).run_search("negligence claims"))

        assert response.query == "negligence claims"
        assert [c.id for c in response.results] == ["v1", "l1"]
        assert response.answer == "Answer [1]."
        assert response.analysis.keywords == ("negligence", "claims")
        assert response.diagnostics["resultCount"] == 2
        assert response.elapsed_seconds >= 0

    def test_all_signals_fail_gives_guidance(self, settings) -> None:
        pipeline = _pipeline(
            settings,
            store=StubCaseStore(error=RuntimeError("store down")),
            vector=StubVectorSearch(error=RuntimeError("vector store down")),
        )
        response = asyncio.run(pipeline.run_search("negligence claims"))

        assert response.results == []
        assert response.answer.startswith('No relevant cases found for "negligence claims".')

    def test_document_and_stats_pass_through(self, settings) -> None:
        store = StubCaseStore([make_passage("c1", case_id="K", text="Body.")], stats={"total_chunks": 1})
        pipeline = _pipeline(settings, store=store)
        assert asyncio.run(pipeline.get_document("K"))["totalChunks"] == 1
        assert asyncio.run(pipeline.get_document("nope")) is None
        assert asyncio.run(pipeline.get_stats()) == {"total_chunks": 1}

    def test_pipeline_info(self, settings) -> None:
        settings.RERANK_ENABLED = False
        info = get_pipeline_info(settings)
        assert info["workflow_stages"] == ["analyze", "search", "synthesize"]
        assert info["rerank"] == "disabled"

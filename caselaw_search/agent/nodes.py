"""
LangGraph Node Functions
Each node is one processing stage of a search request and returns a partial state update.
"""

import time

from caselaw_search.config.logging_config import setup_logger
from caselaw_search.services.retrieval.generator import AnswerSynthesizer
from caselaw_search.services.retrieval.query_analyzer import QueryAnalyzer
from caselaw_search.services.retrieval.search import CaseRetrieval

from .state import SearchState

logger = setup_logger(__name__)


class SearchNodes:
    """Node callables bound to one set of service clients (shared across requests)."""

    def __init__(self, analyzer: QueryAnalyzer, retrieval: CaseRetrieval, synthesizer: AnswerSynthesizer):
        self.analyzer = analyzer
        self.retrieval = retrieval
        self.synthesizer = synthesizer

    async def analyze_query(self, state: SearchState) -> SearchState:
        """Node 1: decompose the query (never fails)"""
        t0 = time.time()
        analysis = await self.analyzer.analyze(state["query"])
        logger.info("analyze: %.2fs (source=%s)", time.time() - t0, analysis.source)
        return {"analysis": analysis, "stage": "analyze"}

    async def search_cases(self, state: SearchState) -> SearchState:
        """Node 2: multi-signal retrieval + fusion"""
        t0 = time.time()
        results, diagnostics = await self.retrieval.retrieve(state["analysis"], court=state.get("court"))
        diagnostics["resultCount"] = len(results)
        logger.info("search: %.2fs, %s results", time.time() - t0, len(results))
        return {"results": results, "diagnostics": diagnostics, "stage": "search"}

    async def synthesize_answer(self, state: SearchState) -> SearchState:
        """Node 3: cited analysis, or guidance when nothing was found"""
        t0 = time.time()
        answer = await self.synthesizer.synthesize(state["query"], state.get("analysis"), state.get("results") or [])
        logger.info("synthesize: %.2fs", time.time() - t0)
        return {"answer": answer, "stage": "synthesize"}

"""
Main interface for the Case-Law Search pipeline
Wires the service clients together once and runs requests through the LangGraph workflow.
"""

import time
from typing import Any

from caselaw_search.config.logging_config import setup_logger
from caselaw_search.config.settings import Config, config
from caselaw_search.services.case_law.documents import build_document_view
from caselaw_search.services.case_law.storage import SupabaseCaseStore
from caselaw_search.services.common.embedder import QueryEmbedder
from caselaw_search.services.models import SearchResponse
from caselaw_search.services.protocols import CaseStore, EmbeddingService, RelevanceScorer, VectorSearchService
from caselaw_search.services.retrieval.fusion import FusionEngine, FusionSettings
from caselaw_search.services.retrieval.generator import AnswerSynthesizer
from caselaw_search.services.retrieval.lexical import LexicalRetriever
from caselaw_search.services.retrieval.query_analyzer import QueryAnalyzer
from caselaw_search.services.retrieval.reranker import build_relevance_scorer
from caselaw_search.services.retrieval.search import CaseRetrieval
from caselaw_search.services.retrieval.vector import QdrantVectorRetriever

from .graph import create_search_graph
from .nodes import SearchNodes
from .state import SearchState

logger = setup_logger(__name__)


class SearchPipeline:
    """
    One long-lived set of clients shared by all requests.

    Request data (analysis, candidates, scores) lives only in the graph state
    of that request.
    """

    def __init__(
        self,
        settings: Config,
        store: CaseStore,
        embedder: EmbeddingService,
        vector: VectorSearchService,
        analyzer: QueryAnalyzer,
        synthesizer: AnswerSynthesizer,
        scorer: RelevanceScorer | None = None,
    ):
        self.settings = settings
        self.store = store
        self.embedder = embedder
        self.vector = vector
        self.retrieval = CaseRetrieval(
            embedder=embedder,
            vector=vector,
            lexical=LexicalRetriever(store, settings),
            scorer=scorer,
            settings=settings,
            fusion=FusionEngine(FusionSettings.from_config(settings)),
        )
        nodes = SearchNodes(analyzer, self.retrieval, synthesizer)
        self.graph = create_search_graph(nodes).compile()

    async def run_search(self, query: str, court: str | None = None) -> SearchResponse:
        """
        Process one search request through the workflow

        Args:
            query: Validated, non-empty query text
            court: Optional court filter

        Returns:
            SearchResponse (results may be empty; answer is then guidance text)
        """
        total_start = time.time()
        logger.info("QUERY: %s", query)

        initial_state: SearchState = {
            "query": query,
            "court": court,
            "stage": "init",
            "analysis": None,
            "results": [],
            "diagnostics": {},
            "answer": None,
        }
        final_state = await self.graph.ainvoke(initial_state)

        elapsed = time.time() - total_start
        logger.info("TOTAL TIME: %.2fs", elapsed)
        return SearchResponse(
            query=query,
            results=final_state.get("results") or [],
            answer=final_state.get("answer"),
            elapsed_seconds=elapsed,
            analysis=final_state.get("analysis"),
            diagnostics=final_state.get("diagnostics") or {},
        )

    async def get_document(self, document_id: str) -> dict | None:
        passages = await self.store.fetch_chunks_by_case(document_id)
        return build_document_view(document_id, passages)

    async def get_stats(self) -> dict:
        return await self.store.get_stats()

    async def aclose(self) -> None:
        for client in (self.embedder, self.vector):
            close = getattr(client, "aclose", None)
            if close is not None:
                await close()


def build_pipeline(settings: Config | None = None) -> SearchPipeline:
    """Production wiring from configuration"""
    settings = settings or config
    return SearchPipeline(
        settings=settings,
        store=SupabaseCaseStore(settings),
        embedder=QueryEmbedder(settings),
        vector=QdrantVectorRetriever(settings),
        analyzer=QueryAnalyzer(settings),
        synthesizer=AnswerSynthesizer(settings),
        scorer=build_relevance_scorer(settings),
    )


def get_pipeline_info(settings: Config | None = None) -> dict[str, Any]:
    """
    Get pipeline configuration and status
    """
    settings = settings or config
    return {
        "name": "Case-Law Search",
        "workflow_stages": ["analyze", "search", "synthesize"],
        "signals": ["vector-main", "vector-subquery-N", "lexical"],
        "rerank": settings.RERANK_PROVIDER if settings.RERANK_ENABLED else "disabled",
        "models": {
            "analysis": settings.ANALYSIS_MODEL,
            "rerank": settings.RERANK_MODEL,
            "chat": settings.CHAT_MODEL,
        },
    }

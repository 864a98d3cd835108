"""
Case Retrieval
Fans one analysed query out to every retrieval signal, joins the results and
hands them to the fusion engine.

    main query      ─ embed ─ vector (MATCH_THRESHOLD)          → vector-main
    each sub-query  ─ embed ─ vector (SUBQUERY_MATCH_THRESHOLD) → vector-subquery-N
    keywords        ─ substring search per keyword              → lexical

Every call has its own timeout and failure boundary; a failed signal
contributes nothing and is recorded in the diagnostics.
"""

import asyncio
import time

from caselaw_search.config.logging_config import setup_logger
from caselaw_search.config.settings import Config, config
from caselaw_search.services.models import SIGNAL_LEXICAL, SIGNAL_VECTOR_MAIN, Candidate, QueryAnalysis, subquery_signal
from caselaw_search.services.protocols import EmbeddingService, RelevanceScorer, VectorSearchService
from caselaw_search.services.retrieval.fusion import FusionEngine, FusionSettings
from caselaw_search.services.retrieval.lexical import LexicalRetriever

logger = setup_logger(__name__)


def distinct_sub_queries(analysis: QueryAnalysis, max_sub_queries: int) -> list[str]:
    """Sub-queries that differ from the original query (case-insensitive), capped."""
    original = analysis.original_query.strip().lower()
    out: list[str] = []
    for sq in analysis.sub_queries:
        key = sq.strip().lower()
        if key and key != original and key not in (o.lower() for o in out):
            out.append(sq.strip())
    return out[:max_sub_queries]


class CaseRetrieval:
    """Concurrent multi-signal retrieval followed by fusion"""

    def __init__(
        self,
        embedder: EmbeddingService,
        vector: VectorSearchService,
        lexical: LexicalRetriever,
        scorer: RelevanceScorer | None = None,
        settings: Config | None = None,
        fusion: FusionEngine | None = None,
    ):
        settings = settings or config
        self.embedder = embedder
        self.vector = vector
        self.lexical = lexical
        self.scorer = scorer
        self.fusion = fusion or FusionEngine(FusionSettings.from_config(settings))
        self.settings = settings

    async def _timed(self, coro, label: str, diagnostics: dict):
        """Await *coro* under the per-call timeout; any failure yields [] and is recorded."""
        timeout = self.settings.CALL_TIMEOUT_SECONDS
        t0 = time.time()
        try:
            result = await asyncio.wait_for(coro, timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("  %s timed out after %.0fs", label, timeout)
            diagnostics[label] = {"status": "timeout", "count": 0}
            return []
        except Exception as e:
            logger.warning("  %s failed: %s", label, e)
            diagnostics[label] = {"status": "failed", "count": 0}
            return []
        result = result or []
        diagnostics[label] = {"status": "ok", "count": len(result)}
        logger.info("  %s: %s hits in %.2fs", label, len(result), time.time() - t0)
        return result

    async def _embed(self, text: str) -> list[float] | None:
        try:
            return await asyncio.wait_for(self.embedder.embed(text), timeout=self.settings.CALL_TIMEOUT_SECONDS)
        except asyncio.TimeoutError:
            logger.warning("  embedding timed out")
            return None
        except Exception as e:
            logger.warning("  embedding failed: %s", e)
            return None

    async def _vector_signals(
        self, query: str, sub_queries: list[str], court: str | None, diagnostics: dict
    ) -> list[tuple[str, list[Candidate]]]:
        s = self.settings
        embeddings = await asyncio.gather(self._embed(query), *(self._embed(sq) for sq in sub_queries))

        plans = [(SIGNAL_VECTOR_MAIN, embeddings[0], s.MATCH_THRESHOLD, s.VECTOR_SEARCH_TOP_K)]
        for i, emb in enumerate(embeddings[1:], 1):
            plans.append((subquery_signal(i), emb, s.SUBQUERY_MATCH_THRESHOLD, s.SUBQUERY_SEARCH_TOP_K))

        tasks = []
        labels = []
        for label, emb, threshold, limit in plans:
            if not emb:
                diagnostics[label] = {"status": "skipped", "count": 0, "reason": "embedding unavailable"}
                continue
            labels.append(label)
            tasks.append(self._timed(self.vector.search(emb, threshold, limit, court), label, diagnostics))
        results = await asyncio.gather(*tasks)
        return list(zip(labels, results, strict=True))

    async def retrieve(
        self, analysis: QueryAnalysis, court: str | None = None
    ) -> tuple[list[Candidate], dict]:
        """
        Run every signal for *analysis* and fuse the results.

        Args:
            analysis: Output of the query analyzer (never None)
            court: Optional court filter, applied to vector and lexical search

        Returns:
            (final ranked candidates, diagnostics)
        """
        t0 = time.time()
        query = analysis.original_query
        court = court.strip().lower() if court and court.strip() else None
        signals: dict = {}
        sub_queries = distinct_sub_queries(analysis, self.settings.MAX_SUB_QUERIES)

        lexical_task = asyncio.create_task(
            self._timed(
                self.lexical.search(list(analysis.keywords), self.settings.LEXICAL_LIMIT_PER_KEYWORD, court),
                SIGNAL_LEXICAL,
                signals,
            )
        )
        vector_lists, lexical_hits = await asyncio.gather(
            self._vector_signals(query, sub_queries, court, signals), lexical_task
        )
        signal_lists = [*vector_lists, (SIGNAL_LEXICAL, lexical_hits)]
        retrieve_elapsed = time.time() - t0

        fused = await self.fusion.fuse(signal_lists, keywords=analysis.keywords, query=query, scorer=self.scorer)
        logger.info(
            "Retrieval: %s merged → %s final (retrieve %.2fs, total %.2fs)",
            fused.merged_count,
            len(fused.results),
            retrieve_elapsed,
            time.time() - t0,
        )

        diagnostics = {
            "signals": signals,
            "succeeded": sorted(k for k, v in signals.items() if v["status"] == "ok"),
            "failed": sorted(k for k, v in signals.items() if v["status"] != "ok"),
            "mergedCandidates": fused.merged_count,
            "rerank": fused.rerank,
        }
        return fused.results, diagnostics

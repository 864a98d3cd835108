"""
Lexical Retriever
Keyword substring search over chunk text. Every hit gets the same baseline
score: it is lexically present but not semantically scored.
"""

import asyncio

from caselaw_search.config.logging_config import setup_logger
from caselaw_search.config.settings import Config, config
from caselaw_search.services.models import Candidate
from caselaw_search.services.protocols import CaseStore
from caselaw_search.utils.legal_keywords import is_substantive

logger = setup_logger(__name__)

MIN_KEYWORD_LENGTH = 4


def searchable_keywords(keywords, max_keywords: int | None = None) -> list[str]:
    """Lower-case, drop stop words and short terms, deduplicate (order kept), cap."""
    out: list[str] = []
    for kw in keywords or []:
        term = (kw or "").strip().lower()
        if not is_substantive(term, MIN_KEYWORD_LENGTH) or term in out:
            continue
        out.append(term)
    return out[:max_keywords] if max_keywords else out


class LexicalRetriever:
    """Runs one independent substring query per keyword against the case store."""

    def __init__(self, store: CaseStore, settings: Config | None = None):
        settings = settings or config
        self.store = store
        self.baseline_score = settings.LEXICAL_BASELINE_SCORE
        self.max_keywords = settings.LEXICAL_MAX_KEYWORDS
        self.timeout = settings.CALL_TIMEOUT_SECONDS

    async def _search_keyword(self, keyword: str, limit: int, court: str | None) -> list[Candidate]:
        try:
            passages = await asyncio.wait_for(self.store.substring_search(keyword, limit, court), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Keyword search '%s' timed out after %.0fs", keyword, self.timeout)
            return []
        except Exception as e:
            logger.warning("Keyword search '%s' failed: %s", keyword, e)
            return []
        return [Candidate(passage=p, score=self.baseline_score) for p in passages if p.id is not None]

    async def search(self, keywords: list[str], limit: int, court: str | None = None) -> list[Candidate]:
        """
        Substring search for each keyword, concurrently

        Args:
            keywords: Candidate terms (filtered here before querying)
            limit: Max matches per keyword
            court: Optional court filter

        Returns:
            All hits, one Candidate per (keyword, chunk) hit; duplicates are
            left for the fusion stage to merge
        """
        terms = searchable_keywords(keywords, self.max_keywords)
        if not terms:
            return []
        per_keyword = await asyncio.gather(*(self._search_keyword(t, limit, court) for t in terms))
        results: list[Candidate] = []
        for term, hits in zip(terms, per_keyword, strict=True):
            logger.info("  lexical '%s' → %s", term, len(hits))
            results.extend(hits)
        return results

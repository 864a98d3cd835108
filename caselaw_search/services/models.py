# © 2026 Crest Advisory Group LLC. All rights reserved.
# PROPRIETARY AND CONFIDENTIAL. Unauthorized copying, distribution, or use is strictly prohibited.

"""
Search Domain Models

Pure data structures with no external dependencies, shared by the
retrievers, the fusion engine, the synthesizer and the HTTP layer.
"""

from dataclasses import dataclass, field, replace
from typing import Any

# Retrieval signals recorded in Candidate.matched_signals
SIGNAL_VECTOR_MAIN = "vector-main"
SIGNAL_LEXICAL = "lexical"
SIGNAL_AI_RERANK = "ai-rerank"

QUERY_TYPES = ("simple", "complex", "factual")


def subquery_signal(index: int) -> str:
    """Signal name for the vector search of the index-th sub-query (1-based)."""
    return f"vector-subquery-{index}"


@dataclass(frozen=True)
class Passage:
    """A retrievable chunk of one judgment"""

    id: Any  # stable chunk id from the store (int or str)
    parent_document_id: Any  # case id; groups chunks of the same judgment
    text: str = ""
    section_label: str = ""  # e.g. "facts", "reasoning"
    index: int | None = None  # position within the judgment
    title: str = ""  # case name
    citation: str = ""  # neutral citation, e.g. "[2019] HKCFA 12"
    source_category: str = ""  # court
    date: str = ""  # decision date
    external_id: str = ""  # source-system id (HKLII)

    @property
    def group_key(self) -> Any:
        """Key used by the diversity cap; chunks without a parent form their own group."""
        return self.parent_document_id if self.parent_document_id not in (None, "") else ("chunk", self.id)


@dataclass
class Candidate:
    """A Passage annotated during fusion"""

    passage: Passage
    score: float = 0.0
    matched_signals: set[str] = field(default_factory=set)
    relevance_score: int | None = None  # 0-10 from the rerank stage
    base_score: float | None = None  # best raw score across observations

    @property
    def id(self) -> Any:
        return self.passage.id

    @property
    def text(self) -> str:
        return self.passage.text

    def copy(self) -> "Candidate":
        return replace(self, matched_signals=set(self.matched_signals))

    def to_dict(self) -> dict:
        """Serialized shape returned to API clients."""
        p = self.passage
        data = {
            "id": p.id,
            "parentDocumentId": p.parent_document_id,
            "title": p.title,
            "citation": p.citation,
            "category": p.source_category,
            "date": p.date,
            "text": p.text,
            "sectionLabel": p.section_label,
            "sourceId": p.external_id,
            "score": round(self.score, 4),
            "matchedSignals": sorted(self.matched_signals),
        }
        if self.relevance_score is not None:
            data["relevanceScore"] = self.relevance_score
        return data


@dataclass(frozen=True)
class QueryAnalysis:
    """Decomposition of one search query"""

    original_query: str
    sub_queries: tuple[str, ...] = ()
    keywords: tuple[str, ...] = ()
    legal_concepts: tuple[str, ...] = ()
    query_type: str = "simple"
    source: str = "heuristic"  # "llm" or "heuristic"

    def to_dict(self) -> dict:
        return {
            "originalQuery": self.original_query,
            "subQueries": list(self.sub_queries),
            "keywords": list(self.keywords),
            "legalConcepts": list(self.legal_concepts),
            "queryType": self.query_type,
            "source": self.source,
        }


@dataclass
class SearchResponse:
    """Result of one search request; built at the end of the request and discarded after."""

    query: str
    results: list[Candidate] = field(default_factory=list)
    answer: str | None = None
    elapsed_seconds: float = 0.0
    analysis: QueryAnalysis | None = None
    diagnostics: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        data = {
            "query": self.query,
            "results": [c.to_dict() for c in self.results],
            "answer": self.answer,
            "elapsedSeconds": round(self.elapsed_seconds, 3),
            "diagnostics": self.diagnostics,
        }
        if self.analysis is not None:
            data["analysis"] = self.analysis.to_dict()
        return data

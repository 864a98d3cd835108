"""
Shared test helpers. Used across unit tests to avoid duplication.
"""

from unittest.mock import AsyncMock, MagicMock

from langchain_core.messages import AIMessage

from caselaw_search.services.models import Candidate, Passage


def make_passage(chunk_id, case_id="case-1", text: str = "", **overrides: object) -> Passage:
    """Create a minimal Passage with sensible defaults for tests."""
    defaults: dict[str, object] = {
        "id": chunk_id,
        "parent_document_id": case_id,
        "text": text or f"Text of chunk {chunk_id}.",
        "section_label": "reasoning",
        "index": 0,
        "title": f"Case {case_id}",
        "citation": "[2020] HKCA 1",
        "source_category": "hkca",
        "date": "2020-01-01",
        "external_id": f"hklii-{case_id}",
    }
    defaults.update(overrides)
    return Passage(**defaults)


def make_candidate(chunk_id, score: float = 0.5, case_id="case-1", text: str = "", **overrides) -> Candidate:
    """Create an untagged Candidate (as a retriever returns it)."""
    return Candidate(passage=make_passage(chunk_id, case_id=case_id, text=text, **overrides), score=score)


def fake_chat_model(*responses) -> MagicMock:
    """Chat model double whose ainvoke returns AIMessages (or raises exceptions) in order."""
    llm = MagicMock()
    llm.ainvoke = AsyncMock(
        side_effect=[r if isinstance(r, Exception) else AIMessage(content=r) for r in responses]
    )
    return llm


class StubScorer:
    """RelevanceScorer double returning fixed scores (or None)."""

    def __init__(self, scores):
        self.scores = scores
        self.calls: list[tuple[str, list]] = []

    async def score(self, query, candidates):
        self.calls.append((query, list(candidates)))
        if self.scores is None:
            return None
        return list(self.scores[: len(candidates)])


class StubEmbedder:
    """EmbeddingService double: fixed vector, None, or an exception per text."""

    def __init__(self, vectors: dict | None = None, default=None, error: Exception | None = None):
        self.vectors = vectors or {}
        self.default = default if default is not None else [0.1] * 384
        self.error = error
        self.calls: list[str] = []

    async def embed(self, text):
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return self.vectors.get(text, self.default)


class StubVectorSearch:
    """VectorSearchService double returning canned candidates per threshold."""

    def __init__(self, by_threshold: dict | None = None, error: Exception | None = None):
        self.by_threshold = by_threshold or {}
        self.error = error
        self.calls: list[tuple] = []

    async def search(self, embedding, threshold, limit, court=None):
        self.calls.append((threshold, limit, court))
        if self.error is not None:
            raise self.error
        return [c.copy() for c in self.by_threshold.get(threshold, [])][:limit]


class StubCaseStore:
    """CaseStore double backed by in-memory passages."""

    def __init__(self, passages=None, error: Exception | None = None, stats: dict | None = None):
        self.passages = list(passages or [])
        self.error = error
        self.stats = stats or {}
        self.searched: list[tuple] = []

    async def substring_search(self, term, limit, court=None):
        self.searched.append((term, limit, court))
        if self.error is not None:
            raise self.error
        hits = [p for p in self.passages if term.lower() in p.text.lower()]
        if court:
            hits = [p for p in hits if p.source_category == court]
        return hits[:limit]

    async def fetch_chunks_by_case(self, case_id):
        if self.error is not None:
            raise self.error
        return [p for p in self.passages if p.parent_document_id == case_id]

    async def get_stats(self):
        if self.error is not None:
            raise self.error
        return self.stats

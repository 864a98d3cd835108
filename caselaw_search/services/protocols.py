# © 2026 Crest Advisory Group LLC. All rights reserved.
# PROPRIETARY AND CONFIDENTIAL. Unauthorized copying, distribution, or use is strictly prohibited.

"""
Service Protocols (Interfaces)

Defines the contracts for the external collaborators so they can be mocked in
tests and swapped in production without coupling to concrete implementations.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from caselaw_search.services.models import Candidate, Passage


# ---------------------------------------------------------------------------
# Embedding
# ---------------------------------------------------------------------------
@runtime_checkable
class EmbeddingService(Protocol):
    """Contract for query embedding.

    Returns None when the service is down or its response has an unexpected shape.
    """

    async def embed(self, text: str) -> list[float] | None:
        """Generate a fixed-dimension embedding vector for one query string."""
        ...


# ---------------------------------------------------------------------------
# Retrieval
# ---------------------------------------------------------------------------
@runtime_checkable
class VectorSearchService(Protocol):
    """Contract for similarity search over chunk embeddings."""

    async def search(
        self,
        embedding: list[float] | None,
        threshold: float,
        limit: int,
        court: str | None = None,
    ) -> list[Candidate]:
        """Scored candidates above *threshold*; [] on any failure."""
        ...


@runtime_checkable
class CaseStore(Protocol):
    """Contract for the case-metadata store (chunk text + case metadata)."""

    async def substring_search(self, term: str, limit: int, court: str | None = None) -> list[Passage]:
        """Chunks whose text contains *term* case-insensitively."""
        ...

    async def fetch_chunks_by_case(self, case_id: str) -> list[Passage]:
        """All chunks of one case ordered by position."""
        ...

    async def get_stats(self) -> dict:
        """Aggregate chunk / case counts and court distribution."""
        ...


# ---------------------------------------------------------------------------
# Rerank
# ---------------------------------------------------------------------------
@runtime_checkable
class RelevanceScorer(Protocol):
    """Contract for the pluggable rerank stage.

    Returns one 0-10 score per candidate in input order, or None when scoring
    is unavailable (the fusion engine then keeps similarity ordering).
    """

    async def score(self, query: str, candidates: list[Candidate]) -> list[int] | None:
        """Relevance of each candidate to *query* on the 0-10 scale."""
        ...

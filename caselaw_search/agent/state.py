"""
Search State Definition for LangGraph
"""

from typing import TypedDict

from caselaw_search.services.models import Candidate, QueryAnalysis


class SearchState(TypedDict, total=False):
    """
    State object passed through the search workflow.

    Tracks one request through: analyze → search → synthesize
    """

    # User input
    query: str
    court: str | None  # optional court filter

    # Processing stage (for tracking)
    stage: str

    # Query decomposition
    analysis: QueryAnalysis | None

    # Fused, ranked results and retrieval diagnostics
    results: list[Candidate]
    diagnostics: dict

    # Final answer (cited analysis or guidance text)
    answer: str | None

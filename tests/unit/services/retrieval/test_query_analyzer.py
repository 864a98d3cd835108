# © 2026 Crest Advisory Group LLC. All rights reserved.
# PROPRIETARY AND CONFIDENTIAL. Unauthorized copying, distribution, or use is strictly prohibited.

"""
Unit tests for QueryAnalyzer: model path, output validation and the
deterministic heuristic fallback.
"""

import asyncio

import pytest

from caselaw_search.services.retrieval.query_analyzer import (
    QueryAnalyzer,
    fallback_analysis,
    heuristic_keywords,
    parse_analysis,
)
from tests.helpers import fake_chat_model

SIMPLE_QUERY = "What is the test for negligence in Hong Kong"


# ---------------------------------------------------------------------------
# Fallback
# ---------------------------------------------------------------------------
class TestFallback:
    """Heuristic analysis used when the model is unavailable."""

    def test_keywords_long_non_stopwords(self) -> None:
        analysis = fallback_analysis(SIMPLE_QUERY)
        assert analysis.keywords == ("negligence",)
        assert analysis.sub_queries == (SIMPLE_QUERY,)
        assert analysis.legal_concepts == ("negligence",)
        assert analysis.source == "heuristic"

    def test_eight_words_is_simple(self) -> None:
        assert fallback_analysis("negligence duty of care owed by school teachers").query_type == "simple"

    def test_more_than_eight_words_is_complex(self) -> None:
        assert fallback_analysis(SIMPLE_QUERY).query_type == "complex"

    def test_keywords_capped_and_deduplicated(self) -> None:
        query = "landlord landlord tenancy repudiation estoppel misrepresentation frustration damages"
        keywords = heuristic_keywords(query, max_keywords=5)
        assert keywords == ["landlord", "tenancy", "repudiation", "estoppel", "misrepresentation"]

    def test_four_letter_words_excluded(self) -> None:
        assert heuristic_keywords("bail fact rule") == []

    def test_concepts_detected_from_vocabulary(self) -> None:
        analysis = fallback_analysis("judicial review of an immigration decision")
        assert "judicial review" in analysis.legal_concepts
        assert "immigration" in analysis.legal_concepts


# ---------------------------------------------------------------------------
# parse_analysis
# ---------------------------------------------------------------------------
class TestParseAnalysis:
    def test_json_inside_prose(self) -> None:
        result = parse_analysis('Sure!\n```json\n{"subQueries": ["a"], "keywords": ["b"]}\n```')
        assert result.ok
        assert result.value.sub_queries == ["a"]

    def test_no_json_is_failure(self) -> None:
        assert not parse_analysis("I cannot help with that").ok

    def test_schema_mismatch_is_failure(self) -> None:
        result = parse_analysis('{"subQueries": "not a list", "keywords": 3}')
        assert not result.ok
        assert "schema mismatch" in result.error

    def test_empty_object_is_failure(self) -> None:
        assert not parse_analysis("{}").ok


# ---------------------------------------------------------------------------
# QueryAnalyzer
# ---------------------------------------------------------------------------
class TestQueryAnalyzer:
    """Model path with fallback."""

    def test_model_output_used(self, settings) -> None:
        llm = fake_chat_model(
            'Here is the plan: {"subQueries": ["duty of care of schools", "standard of care for teachers"], '
            '"keywords": ["Negligence", "duty of care", "negligence"], '
            '"legalConcepts": ["negligence"], "queryType": "Complex"}'
        )
        analysis = asyncio.run(QueryAnalyzer(settings, llm=llm).analyze("school negligence"))

        assert analysis.source == "llm"
        assert analysis.sub_queries == ("duty of care of schools", "standard of care for teachers")
        assert analysis.keywords == ("negligence", "duty of care")
        assert analysis.legal_concepts == ("negligence",)
        assert analysis.query_type == "complex"
        assert analysis.original_query == "school negligence"

    def test_caps_applied(self, settings) -> None:
        llm = fake_chat_model(
            '{"subQueries": ["q1", "q2", "q3", "q4", "q5"], '
            '"keywords": ["k1", "k2", "k3", "k4", "k5", "k6", "k7"], "queryType": "factual"}'
        )
        analysis = asyncio.run(QueryAnalyzer(settings, llm=llm).analyze("anything"))
        assert len(analysis.sub_queries) == 3
        assert len(analysis.keywords) == 5
        assert analysis.query_type == "factual"

    def test_unknown_query_type_uses_heuristic(self, settings) -> None:
        llm = fake_chat_model('{"subQueries": ["x"], "keywords": ["negligence"], "queryType": "weird"}')
        analysis = asyncio.run(QueryAnalyzer(settings, llm=llm).analyze("negligence test"))
        assert analysis.query_type == "simple"

    def test_missing_keywords_filled_by_heuristic(self, settings) -> None:
        llm = fake_chat_model('{"subQueries": ["occupier duty"]}')
        analysis = asyncio.run(QueryAnalyzer(settings, llm=llm).analyze("occupiers negligence"))
        assert analysis.keywords == ("occupiers", "negligence")
        assert analysis.source == "llm"

    def test_unparsable_output_falls_back(self, settings) -> None:
        llm = fake_chat_model("Sorry, I can't do that.")
        analysis = asyncio.run(QueryAnalyzer(settings, llm=llm).analyze(SIMPLE_QUERY))
        assert analysis == fallback_analysis(SIMPLE_QUERY)

    def test_model_error_falls_back(self, settings) -> None:
        llm = fake_chat_model(RuntimeError("model exploded"))
        analysis = asyncio.run(QueryAnalyzer(settings, llm=llm).analyze(SIMPLE_QUERY))
        assert analysis.source == "heuristic"
        assert analysis.keywords == ("negligence",)

    def test_disabled_skips_model(self, settings) -> None:
        settings.QUERY_ANALYSIS_ENABLED = False
        llm = fake_chat_model('{"subQueries": ["x"], "keywords": ["y"]}')
        analysis = asyncio.run(QueryAnalyzer(settings, llm=llm).analyze(SIMPLE_QUERY))
        assert analysis.source == "heuristic"
        llm.ainvoke.assert_not_called()

    @pytest.mark.parametrize("query", ["", "   "])
    def test_blank_query_never_raises(self, settings, query) -> None:
        analysis = asyncio.run(QueryAnalyzer(settings, llm=fake_chat_model()).analyze(query))
        assert analysis.keywords == ()
        assert analysis.source == "heuristic"

# © 2026 Crest Advisory Group LLC. All rights reserved.
# PROPRIETARY AND CONFIDENTIAL. Unauthorized copying, distribution, or use is strictly prohibited.

"""
Unit tests for SupabaseCaseStore: row mapping, query construction and stats
aggregation.

The Supabase AsyncClient is replaced by a chainable mock; no network calls.
"""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from postgrest.exceptions import APIError

from caselaw_search.services.case_law.storage import SupabaseCaseStore, escape_like, passage_from_row

ROW = {
    "id": 11,
    "case_id": "case-1",
    "chunk_index": 2,
    "case_name": "HKSAR v Wong",
    "neutral_citation": "[2021] HKCA 100",
    "court": "hkca",
    "decision_date": "2021-03-04",
    "chunk_text": "The appeal on sentence is dismissed.",
    "section_type": "conclusion",
    "hklii_id": "x1",
}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
def _builder(data) -> MagicMock:
    """Chainable PostgREST query builder whose execute() returns *data*."""
    builder = MagicMock()
    for method in ("select", "ilike", "eq", "order", "limit"):
        getattr(builder, method).return_value = builder
    if isinstance(data, Exception):
        builder.execute = AsyncMock(side_effect=data)
    else:
        builder.execute = AsyncMock(return_value=SimpleNamespace(data=data))
    return builder


def _client(table_data=None, rpc_data=None) -> MagicMock:
    client = MagicMock()
    client.table.return_value = _builder(table_data if table_data is not None else [])
    client.rpc.return_value = _builder(rpc_data if rpc_data is not None else [])
    return client


# ---------------------------------------------------------------------------
# passage_from_row
# ---------------------------------------------------------------------------
class TestRowMapping:
    def test_maps_columns(self) -> None:
        p = passage_from_row(ROW)
        assert p.id == 11
        assert p.parent_document_id == "case-1"
        assert p.text == "The appeal on sentence is dismissed."
        assert p.section_label == "conclusion"
        assert p.citation == "[2021] HKCA 100"
        assert p.source_category == "hkca"

    def test_missing_columns_default_to_empty(self) -> None:
        p = passage_from_row({"id": 1})
        assert p.text == ""
        assert p.title == ""
        assert p.index is None


# ---------------------------------------------------------------------------
# SupabaseCaseStore
# ---------------------------------------------------------------------------
class TestSupabaseCaseStore:
    def test_requires_credentials_without_client(self, settings) -> None:
        settings.SUPABASE_URL = ""
        with pytest.raises(ValueError, match="Supabase URL and KEY required"):
            SupabaseCaseStore(settings)

    def test_substring_search_query(self, settings) -> None:
        client = _client(table_data=[ROW])
        store = SupabaseCaseStore(settings, client=client)
        passages = asyncio.run(store.substring_search("sentence", 8, court="HKCA"))

        builder = client.table.return_value
        client.table.assert_called_with(settings.SUPABASE_CHUNKS_TABLE)
        builder.ilike.assert_called_once_with("chunk_text", "%sentence%")
        builder.eq.assert_called_once_with("court", "hkca")
        builder.limit.assert_called_once_with(8)
        assert [p.id for p in passages] == [11]

    def test_substring_search_escapes_wildcards(self, settings) -> None:
        client = _client(table_data=[])
        asyncio.run(SupabaseCaseStore(settings, client=client).substring_search("100%_owned", 8))
        client.table.return_value.ilike.assert_called_once_with("chunk_text", r"%100\%\_owned%")

    def test_substring_search_without_court(self, settings) -> None:
        client = _client(table_data=[])
        asyncio.run(SupabaseCaseStore(settings, client=client).substring_search("sentence", 8))
        client.table.return_value.eq.assert_not_called()

    def test_errors_propagate(self, settings) -> None:
        client = MagicMock()
        client.table.return_value = _builder(APIError({"message": "relation does not exist", "code": "42P01"}))
        store = SupabaseCaseStore(settings, client=client)
        with pytest.raises(APIError):
            asyncio.run(store.substring_search("sentence", 8))

    def test_fetch_chunks_ordered_by_index(self, settings) -> None:
        client = _client(table_data=[ROW])
        passages = asyncio.run(SupabaseCaseStore(settings, client=client).fetch_chunks_by_case("case-1"))
        builder = client.table.return_value
        builder.eq.assert_called_once_with("case_id", "case-1")
        builder.order.assert_called_once_with("chunk_index")
        assert len(passages) == 1

    def test_stats(self, settings) -> None:
        client = _client(
            table_data=[{"court": "hkca"}, {"court": "hkca"}, {"court": "hkcfa"}, {"court": None}],
            rpc_data=[{"total_chunks": 120, "total_cases": 12, "avg_chunks_per_case": 10}],
        )
        stats = asyncio.run(SupabaseCaseStore(settings, client=client).get_stats())

        client.rpc.assert_called_once_with("get_chunk_stats", {})
        assert stats == {
            "total_chunks": 120,
            "total_documents": 12,
            "avg_chunks_per_document": 10,
            "category_distribution": {"hkca": 2, "hkcfa": 1, "unknown": 1},
        }

    def test_stats_distribution_failure_non_critical(self, settings) -> None:
        client = MagicMock()
        client.rpc.return_value = _builder([{"total_chunks": 5, "total_cases": 1, "avg_chunks_per_case": 5}])
        client.table.return_value = _builder(APIError({"message": "timeout", "code": "57014"}))
        stats = asyncio.run(SupabaseCaseStore(settings, client=client).get_stats())
        assert stats["total_chunks"] == 5
        assert stats["category_distribution"] == {}


class TestEscapeLike:
    def test_wildcards_and_backslash(self) -> None:
        assert escape_like(r"50%_a\b") == r"50\%\_a\\b"

    def test_plain_term_unchanged(self) -> None:
        assert escape_like("negligence") == "negligence"

"""
Case Chunk Store (Supabase)
Substring search, per-case chunk lookup and corpus statistics over the
``case_chunks`` table.
"""

import asyncio
from collections import Counter

from postgrest.exceptions import APIError as PostgrestAPIError
from supabase import AsyncClient, create_async_client

from caselaw_search.config.logging_config import setup_logger
from caselaw_search.config.settings import Config, config
from caselaw_search.services.models import Passage

logger = setup_logger(__name__)

_CHUNK_COLUMNS = (
    "id, case_id, chunk_index, case_name, neutral_citation, court, decision_date, chunk_text, section_type, hklii_id"
)

# Upper bound on rows scanned for the court distribution
_STATS_ROW_LIMIT = 10000


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so a keyword matches literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def passage_from_row(row: dict) -> Passage:
    """Normalise one ``case_chunks`` row."""
    return Passage(
        id=row.get("id"),
        parent_document_id=row.get("case_id"),
        text=row.get("chunk_text") or "",
        section_label=row.get("section_type") or "",
        index=row.get("chunk_index"),
        title=row.get("case_name") or "",
        citation=row.get("neutral_citation") or "",
        source_category=row.get("court") or "",
        date=row.get("decision_date") or "",
        external_id=row.get("hklii_id") or "",
    )


class SupabaseCaseStore:
    """
    Read-only access to case chunks stored in Supabase

    Methods raise ``postgrest.exceptions.APIError`` / ``OSError`` on failure;
    callers decide whether a failure degrades a signal or fails the request.
    """

    def __init__(
        self,
        settings: Config | None = None,
        client: AsyncClient | None = None,
    ):
        settings = settings or config
        self.url = settings.SUPABASE_URL
        self.key = settings.SUPABASE_KEY
        self.table = settings.SUPABASE_CHUNKS_TABLE

        if client is None and (not self.url or not self.key):
            raise ValueError("Supabase URL and KEY required")

        self.client: AsyncClient | None = client
        self._client_lock = asyncio.Lock()

    async def _get_client(self) -> AsyncClient:
        """Lazy load async client"""
        async with self._client_lock:
            if self.client is None:
                self.client = await create_async_client(self.url, self.key)
        return self.client

    async def substring_search(self, term: str, limit: int, court: str | None = None) -> list[Passage]:
        """
        Case-insensitive substring match on chunk text (``ILIKE %term%``).

        Args:
            term: Keyword to look for
            limit: Maximum rows
            court: Optional court filter (lower-cased)
        """
        client = await self._get_client()
        query = client.table(self.table).select(_CHUNK_COLUMNS).ilike("chunk_text", f"%{escape_like(term)}%")
        if court:
            query = query.eq("court", court.strip().lower())
        response = await query.limit(limit).execute()
        return [passage_from_row(row) for row in response.data or []]

    async def fetch_chunks_by_case(self, case_id: str) -> list[Passage]:
        """All chunks of one case, ordered by ``chunk_index``."""
        client = await self._get_client()
        response = (
            await client.table(self.table)
            .select(_CHUNK_COLUMNS)
            .eq("case_id", case_id)
            .order("chunk_index")
            .execute()
        )
        return [passage_from_row(row) for row in response.data or []]

    async def get_stats(self) -> dict:
        """
        Corpus statistics

        Totals come from the ``get_chunk_stats`` RPC; the court distribution is
        counted from up to 10 000 rows. A failing distribution query leaves the
        distribution empty rather than failing the whole call.
        """
        client = await self._get_client()
        stats_response = await client.rpc("get_chunk_stats", {}).execute()
        rows = stats_response.data or []
        totals = rows[0] if isinstance(rows, list) and rows else (rows if isinstance(rows, dict) else {})

        distribution: dict[str, int] = {}
        try:
            courts_response = await client.table(self.table).select("court").limit(_STATS_ROW_LIMIT).execute()
            counts = Counter((row.get("court") or "unknown") for row in courts_response.data or [])
            distribution = dict(counts.most_common())
        except (PostgrestAPIError, OSError) as e:
            logger.warning("Court distribution query failed (non-critical): %s", e)

        return {
            "total_chunks": totals.get("total_chunks") or 0,
            "total_documents": totals.get("total_cases") or 0,
            "avg_chunks_per_document": totals.get("avg_chunks_per_case") or 0,
            "category_distribution": distribution,
        }

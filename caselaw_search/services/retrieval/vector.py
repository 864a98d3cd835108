"""
Vector Retriever
Similarity search over chunk embeddings stored in Qdrant (REST API).
"""

import asyncio

import httpx

from caselaw_search.config.logging_config import setup_logger
from caselaw_search.config.settings import Config, config
from caselaw_search.services.models import Candidate, Passage

logger = setup_logger(__name__)


def passage_from_payload(point_id: object, payload: dict | None) -> Passage:
    """Build a Passage from a Qdrant point payload (same columns as the chunk table)."""
    payload = payload or {}
    return Passage(
        id=point_id,
        parent_document_id=payload.get("case_id"),
        text=payload.get("chunk_text") or "",
        section_label=payload.get("section_type") or "",
        index=payload.get("chunk_index"),
        title=payload.get("case_name") or "",
        citation=payload.get("neutral_citation") or "",
        source_category=payload.get("court") or "",
        date=payload.get("decision_date") or "",
        external_id=payload.get("hklii_id") or "",
    )


def build_court_filter(court: str | None) -> dict | None:
    """Qdrant payload filter restricting results to one court."""
    if not court or not court.strip():
        return None
    return {"must": [{"key": "court", "match": {"value": court.strip().lower()}}]}


class QdrantVectorRetriever:
    """
    Vector similarity search against a Qdrant collection

    The similarity score from Qdrant (cosine, already in [0, 1]) passes through
    unchanged as the candidate's initial score. The threshold is chosen by the
    caller per call site.
    """

    def __init__(
        self,
        settings: Config | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        settings = settings or config
        self.url = settings.QDRANT_URL
        self.collection = settings.QDRANT_COLLECTION
        self.timeout = settings.CALL_TIMEOUT_SECONDS
        self.headers = {"Content-Type": "application/json"}
        if settings.QDRANT_API_KEY:
            self.headers["api-key"] = settings.QDRANT_API_KEY
        self.client = client
        self._client_lock = asyncio.Lock()

    async def _get_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self.client is None:
                self.client = httpx.AsyncClient(timeout=self.timeout)
        return self.client

    async def search(
        self,
        embedding: list[float] | None,
        threshold: float,
        limit: int,
        court: str | None = None,
    ) -> list[Candidate]:
        """
        Similarity search

        Args:
            embedding: Query vector; None or empty yields no results
            threshold: Minimum similarity to return
            limit: Maximum number of points
            court: Optional court filter

        Returns:
            Candidates scored by raw similarity, or [] on any failure
        """
        if not embedding:
            return []

        body = {
            "query": embedding,
            "limit": limit,
            "score_threshold": threshold,
            "with_payload": True,
        }
        court_filter = build_court_filter(court)
        if court_filter:
            body["filter"] = court_filter

        try:
            client = await self._get_client()
            response = await client.post(
                f"{self.url}/collections/{self.collection}/points/query",
                headers=self.headers,
                json=body,
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Vector search failed: %s", e)
            return []

        result = data.get("result") if isinstance(data, dict) else None
        # /points/query nests points under "points"; the older /points/search returns a bare list
        points = result.get("points") or [] if isinstance(result, dict) else result or []
        results: list[Candidate] = []
        for point in points:
            if not isinstance(point, dict) or point.get("id") is None:
                continue
            score = float(point.get("score") or 0.0)
            if score < threshold:
                continue
            results.append(Candidate(passage=passage_from_payload(point["id"], point.get("payload")), score=score))
        return results

    async def aclose(self) -> None:
        if self.client is not None:
            await self.client.aclose()
            self.client = None

"""
Query Embedding Client
Turns query text into a 384-dim vector via a hosted feature-extraction endpoint
(BAAI/bge-small-en-v1.5 on the Hugging Face inference API by default).
"""

import asyncio

import httpx

from caselaw_search.config.logging_config import setup_logger
from caselaw_search.config.settings import Config, config

logger = setup_logger(__name__)


def extract_vector(raw: object, dimensions: int = 384) -> list[float] | None:
    """
    Normalise the endpoint's response to a flat vector.

    Accepts a flat ``dimensions``-length array or a singly-nested array
    (``[[...]]``) and returns the inner vector. Any other shape → None.
    """
    if not isinstance(raw, list) or not raw:
        return None
    candidate = raw
    if len(raw) != dimensions or isinstance(raw[0], list):
        if not isinstance(raw[0], list):
            return None
        candidate = raw[0]
    if len(candidate) != dimensions:
        return None
    if not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in candidate):
        return None
    return [float(v) for v in candidate]


class QueryEmbedder:
    """
    Async embedding client

    Features:
    - Pooled httpx client reused across requests
    - Tolerates flat or nested response shapes
    - Never raises: failures are logged and reported as None
    """

    def __init__(
        self,
        settings: Config | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        settings = settings or config
        self.api_url = settings.EMBEDDING_API_URL
        self.dimensions = settings.EMBEDDING_DIMENSIONS
        self.timeout = settings.CALL_TIMEOUT_SECONDS
        self.headers = {"Content-Type": "application/json"}
        if settings.HF_API_TOKEN:
            self.headers["Authorization"] = f"Bearer {settings.HF_API_TOKEN}"
        self.client = client
        self._client_lock = asyncio.Lock()

    async def _get_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self.client is None:
                self.client = httpx.AsyncClient(timeout=self.timeout)
        return self.client

    async def embed(self, text: str) -> list[float] | None:
        """
        Generate embedding for a single query

        Args:
            text: Query string (truncation is the service's concern)

        Returns:
            Embedding vector, or None when unavailable
        """
        if not text or not text.strip():
            return None
        try:
            client = await self._get_client()
            response = await client.post(
                self.api_url,
                headers=self.headers,
                json={"inputs": text, "options": {"wait_for_model": True}},
            )
            response.raise_for_status()
            raw = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Embedding request failed: %s", e)
            return None

        vector = extract_vector(raw, self.dimensions)
        if vector is None:
            logger.warning("Embedding response has unexpected shape (type=%s)", type(raw).__name__)
        return vector

    async def aclose(self) -> None:
        if self.client is not None:
            await self.client.aclose()
            self.client = None

"""
Request models for the search API
"""

from pydantic import BaseModel, StrictStr


class SearchRequest(BaseModel):
    """Body of POST /search"""

    query: StrictStr
    court: str | None = None  # optional court filter, e.g. "hkcfa"


class HealthResponse(BaseModel):
    status: str = "healthy"

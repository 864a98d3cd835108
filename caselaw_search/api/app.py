"""
Case-Law Search API
FastAPI surface over the search pipeline: search, corpus stats, document view, health.

Run: uvicorn caselaw_search.api.app:app --port 8000
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from caselaw_search.agent.agent import SearchPipeline, build_pipeline
from caselaw_search.config.logging_config import setup_logger
from caselaw_search.config.settings import Config, config, validate_env_for_app

from .schemas import HealthResponse, SearchRequest

logger = setup_logger(__name__)

QUERY_REQUIRED = "Query is required and must be a string"


def _error_response(status_code: int, error: str, details: str | None = None) -> JSONResponse:
    content = {"error": error}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def create_app(pipeline: SearchPipeline | None = None, settings: Config | None = None) -> FastAPI:
    """
    Build the API app

    Args:
        pipeline: Pre-built pipeline (tests); when None it is built from
            configuration at startup and closed at shutdown
        settings: Configuration (defaults to the process-wide config)
    """
    settings = settings or config

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = app.state.pipeline is None
        if owned:
            validate_env_for_app(settings)
            app.state.pipeline = build_pipeline(settings)
            logger.info("Search pipeline ready")
        yield
        if owned:
            await app.state.pipeline.aclose()

    app = FastAPI(title="Case-Law Search API", lifespan=lifespan)
    app.state.pipeline = pipeline

    @app.exception_handler(HTTPException)
    async def http_error_handler(request: Request, exc: HTTPException):
        return _error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        # Missing/non-JSON body or a bad "query" field
        if request.url.path == "/search" and any(
            e.get("type") == "json_invalid" or tuple(e.get("loc", ()))[1:2] in ((), ("query",)) for e in errors
        ):
            return _error_response(400, QUERY_REQUIRED)
        first = errors[0] if errors else {}
        field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query"))
        return _error_response(400, f"Invalid request: {field or 'body'} {first.get('msg', '')}".strip())

    def _pipeline() -> SearchPipeline:
        return app.state.pipeline

    @app.get("/health", response_model=HealthResponse)
    async def health():
        return HealthResponse()

    @app.post("/search")
    async def search(request: SearchRequest):
        query = " ".join(request.query.split())
        if not query:
            raise HTTPException(status_code=400, detail=QUERY_REQUIRED)
        if len(query) > settings.MAX_QUERY_LENGTH:
            raise HTTPException(
                status_code=400, detail=f"Query exceeds maximum length of {settings.MAX_QUERY_LENGTH} characters"
            )
        try:
            response = await _pipeline().run_search(query, court=request.court)
        except Exception as e:
            logger.exception("Search failed")
            return _error_response(500, "Search failed", str(e) if settings.DEBUG_ERRORS else None)
        return response.to_dict()

    @app.get("/stats")
    async def stats():
        try:
            raw = await _pipeline().get_stats()
        except Exception as e:
            logger.exception("Stats query failed")
            return _error_response(500, "Failed to fetch stats", str(e) if settings.DEBUG_ERRORS else None)
        return {
            "totalChunks": raw.get("total_chunks", 0),
            "totalDocuments": raw.get("total_documents", 0),
            "avgChunksPerDocument": raw.get("avg_chunks_per_document", 0),
            "categoryDistribution": raw.get("category_distribution", {}),
            "lastUpdated": datetime.now(timezone.utc).isoformat(),
        }

    @app.get("/document")
    async def document(id: str | None = None):  # noqa: A002
        if not id or not id.strip():
            raise HTTPException(status_code=400, detail="Document id is required")
        try:
            view = await _pipeline().get_document(id.strip())
        except Exception as e:
            logger.exception("Document lookup failed")
            return _error_response(500, "Failed to fetch document", str(e) if settings.DEBUG_ERRORS else None)
        if view is None:
            raise HTTPException(status_code=404, detail="Document not found")
        return view

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)

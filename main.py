#!/usr/bin/env python3
"""
Case-Law Search - Main Entry Point

Usage:
    python main.py          # Serve the HTTP API with uvicorn (default)
    python main.py --cli    # Run CLI mode (interactive)
"""

import asyncio
import contextlib
import os
import sys

import uvicorn

from caselaw_search.agent.agent import build_pipeline, get_pipeline_info
from caselaw_search.config.logging_config import logger
from caselaw_search.config.settings import config, validate_env_for_app


def run_server():
    """Serve the search API"""
    uvicorn.run(
        "caselaw_search.api.app:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
    )


def _print_response(response) -> None:
    print(f"\n{response.answer}\n")
    for i, c in enumerate(response.results, 1):
        p = c.passage
        relevance = f" relevance={c.relevance_score}/10" if c.relevance_score is not None else ""
        print(f"[{i}] {p.title} {p.citation} ({p.source_category}) score={c.score:.3f}{relevance}")
    print(f"\n({response.elapsed_seconds:.1f}s)\n")


async def run_cli_async():
    """Run interactive CLI mode (Async)"""
    validate_env_for_app(config)
    pipeline = build_pipeline(config)
    info = get_pipeline_info(config)
    logger.info("=" * 60)
    logger.info("%s - CLI Mode (rerank: %s)", info["name"], info["rerank"])
    logger.info("=" * 60)
    logger.info("Type your legal questions. Type 'exit' to quit.\n")

    try:
        while True:
            print("Query: ", end="", flush=True)
            query = (await asyncio.to_thread(sys.stdin.readline)).strip()

            if query.lower() in ("exit", "quit", "q"):
                logger.info("Goodbye!")
                break
            if not query:
                continue
            response = await pipeline.run_search(query[: config.MAX_QUERY_LENGTH])
            _print_response(response)
    finally:
        await pipeline.aclose()


def run_cli():
    """Wrapper for async CLI"""
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(run_cli_async())


def main():
    """Main entry point"""
    if len(sys.argv) > 1 and sys.argv[1] == "--cli":
        run_cli()
    else:
        run_server()


if __name__ == "__main__":
    main()

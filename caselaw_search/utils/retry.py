"""
Retry with exponential backoff for language-model and rerank API calls.
Handles transient failures: rate limits, timeouts, connection errors.
"""

import asyncio
import functools
import time

from caselaw_search.config.logging_config import setup_logger

logger = setup_logger(__name__)

DEFAULT_RETRIES = 2
DEFAULT_INITIAL_DELAY = 0.5
DEFAULT_MAX_DELAY = 4.0
DEFAULT_BACKOFF = 2.0

# Exception class names that indicate transient (retryable) errors
RETRYABLE_OPENAI = ("RateLimitError", "APIConnectionError", "APITimeoutError", "InternalServerError")
RETRYABLE_COHERE = ("TooManyRequestsError", "ServiceUnavailableError", "GatewayTimeoutError")
RETRYABLE_HTTPX = ("ConnectError", "ReadTimeout", "ConnectTimeout", "RemoteProtocolError")

_RETRYABLE_MARKERS = ("429", "503", "rate limit", "timed out", "timeout", "connection reset")


def _is_retryable(exc: BaseException) -> bool:
    """Check if exception is retryable (rate limit, timeout, connection)."""
    name = type(exc).__name__
    if name in RETRYABLE_OPENAI or name in RETRYABLE_COHERE or name in RETRYABLE_HTTPX:
        return True
    msg = str(exc).lower()
    return any(marker in msg for marker in _RETRYABLE_MARKERS)


def with_retry(
    retries: int = DEFAULT_RETRIES,
    initial_delay: float = DEFAULT_INITIAL_DELAY,
    max_delay: float = DEFAULT_MAX_DELAY,
    backoff: float = DEFAULT_BACKOFF,
):
    """Decorator for sync functions: retry with exponential backoff."""

    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            delay = initial_delay
            for attempt in range(retries + 1):
                try:
                    return fn(*args, **kwargs)
                except Exception as e:
                    if attempt >= retries or not _is_retryable(e):
                        raise
                    logger.warning("Retry %s/%s after %s: %s", attempt + 1, retries, type(e).__name__, e)
                    time.sleep(delay)
                    delay = min(delay * backoff, max_delay)
            return None

        return wrapper

    return decorator


async def retry_async(
    coro_fn,
    retries: int = DEFAULT_RETRIES,
    initial_delay: float = DEFAULT_INITIAL_DELAY,
    max_delay: float = DEFAULT_MAX_DELAY,
    backoff: float = DEFAULT_BACKOFF,
):
    """
    Retry an async call. Usage: await retry_async(lambda: llm.ainvoke(...))
    """
    delay = initial_delay
    for attempt in range(retries + 1):
        try:
            return await coro_fn()
        except Exception as e:
            if attempt >= retries or not _is_retryable(e):
                raise
            logger.warning("Retry %s/%s after %s: %s", attempt + 1, retries, type(e).__name__, e)
            await asyncio.sleep(delay)
            delay = min(delay * backoff, max_delay)
    return None

"""
Chat model construction and invocation
All language-model calls go through an OpenAI-compatible endpoint via LangChain ChatOpenAI.
"""

import asyncio

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import BaseMessage
from langchain_openai import ChatOpenAI

from caselaw_search.config.settings import Config, config
from caselaw_search.utils.retry import retry_async


def build_chat_model(
    model: str,
    temperature: float = 0.1,
    max_tokens: int = 200,
    settings: Config | None = None,
    timeout: float | None = None,
) -> ChatOpenAI:
    """ChatOpenAI bound to the configured endpoint. Retries are handled by retry_async."""
    settings = settings or config
    return ChatOpenAI(
        model=model,
        temperature=temperature,
        max_tokens=max_tokens,
        api_key=settings.LLM_API_KEY or "not-configured",
        base_url=settings.LLM_API_URL,
        timeout=timeout or settings.CALL_TIMEOUT_SECONDS,
        max_retries=0,
    )


async def complete_text(llm: BaseChatModel, messages: list[BaseMessage], timeout: float) -> str:
    """
    Invoke *llm* with retry and an overall timeout; return the text content.

    Raises whatever the model raises (or asyncio.TimeoutError); callers own the
    failure boundary.
    """
    response = await asyncio.wait_for(retry_async(lambda: llm.ainvoke(messages)), timeout=timeout)
    content = getattr(response, "content", response)
    if isinstance(content, list):
        # Some providers return content blocks
        content = "".join(part.get("text", "") if isinstance(part, dict) else str(part) for part in content)
    return (content or "").strip()

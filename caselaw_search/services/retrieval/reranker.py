"""
Relevance Scorers
Pluggable rerank stage: assign each candidate a 0-10 relevance score for the query.

Default is a small chat model asked for a strict numeric array; Cohere Rerank
is the alternative provider. Both return None when scoring is unavailable so the
fusion engine can keep similarity ordering.
"""

import asyncio

import cohere
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage

from caselaw_search.config.logging_config import setup_logger
from caselaw_search.config.settings import Config, config
from caselaw_search.services.common.llm import build_chat_model, complete_text
from caselaw_search.services.models import Candidate
from caselaw_search.services.protocols import RelevanceScorer
from caselaw_search.utils.model_output import extract_score_array
from caselaw_search.utils.retry import with_retry

logger = setup_logger(__name__)

# Score used for a candidate Cohere did not return a score for
DEFAULT_RELEVANCE = 5

RERANK_SYSTEM_PROMPT = """You rate how relevant Hong Kong court judgment excerpts are to a legal research query.

Score every excerpt from 0 to 10:
- 9-10: directly on-topic, addresses the legal question
- 6-8: related, same area of law or similar facts
- 3-5: tangential, shares terms but not the issue
- 0-2: unrelated

Return ONLY a JSON array of integers, one per excerpt, in the order given. Example for 3 excerpts: [8, 2, 6]"""


def format_rerank_documents(candidates: list[Candidate], text_chars: int = 300) -> str:
    """Numbered title + truncated text block for the scoring prompt (labels avoid brackets)."""
    parts = []
    for i, c in enumerate(candidates, 1):
        title = c.passage.title or "Untitled"
        text = " ".join(c.text.split())[:text_chars]
        parts.append(f"Excerpt {i}: {title}\n{text}")
    return "\n\n".join(parts)


class LLMRelevanceScorer:
    """Relevance scoring via an OpenAI-compatible chat model"""

    def __init__(self, settings: Config | None = None, llm: BaseChatModel | None = None):
        settings = settings or config
        self.text_chars = settings.RERANK_TEXT_CHARS
        self.timeout = settings.CALL_TIMEOUT_SECONDS
        self._settings = settings
        self._llm = llm

    def _get_llm(self) -> BaseChatModel:
        if self._llm is None:
            self._llm = build_chat_model(
                self._settings.RERANK_MODEL, temperature=0.0, max_tokens=150, settings=self._settings
            )
        return self._llm

    async def score(self, query: str, candidates: list[Candidate]) -> list[int] | None:
        if not candidates:
            return []
        user_message = (
            f"Query: {query}\n\nExcerpts:\n{format_rerank_documents(candidates, self.text_chars)}\n\n"
            f"Return {len(candidates)} scores."
        )
        try:
            text = await complete_text(
                self._get_llm(),
                [SystemMessage(content=RERANK_SYSTEM_PROMPT), HumanMessage(content=user_message)],
                timeout=self.timeout,
            )
        except Exception as e:
            logger.warning("Relevance scoring call failed: %s", e)
            return None

        parsed = extract_score_array(text, expected=len(candidates))
        if not parsed.ok:
            logger.warning("Relevance scores unparsable (%s); keeping similarity order", parsed.error)
            return None
        return parsed.value


class CohereRelevanceScorer:
    """
    Relevance scoring via Cohere Rerank

    Cohere's relevance (0-1) is mapped onto the 0-10 scale so the same cutoff
    and combined sort key apply.
    """

    def __init__(self, settings: Config | None = None, client: cohere.Client | None = None):
        settings = settings or config
        if client is None and not settings.COHERE_API_KEY:
            raise ValueError("COHERE_API_KEY not found in environment")
        self.client = client or cohere.Client(settings.COHERE_API_KEY)
        self.model = settings.COHERE_RERANK_MODEL
        self.text_chars = settings.RERANK_TEXT_CHARS
        self.timeout = settings.CALL_TIMEOUT_SECONDS
        logger.debug("Cohere Rerank initialized (model=%s)", self.model)

    @with_retry()
    def _rerank(self, query: str, documents: list[str]):
        return self.client.rerank(model=self.model, query=query, documents=documents, top_n=len(documents))

    async def score(self, query: str, candidates: list[Candidate]) -> list[int] | None:
        if not candidates:
            return []
        documents = [f"{c.passage.title}\n{c.text[: self.text_chars]}" for c in candidates]
        loop = asyncio.get_running_loop()
        try:
            response = await asyncio.wait_for(
                loop.run_in_executor(None, self._rerank, query, documents), timeout=self.timeout
            )
        except Exception as e:
            logger.warning("Cohere rerank failed: %s", e)
            return None

        scores = [DEFAULT_RELEVANCE] * len(candidates)
        for item in getattr(response, "results", None) or []:
            if 0 <= item.index < len(candidates):
                scores[item.index] = min(10, max(0, round(float(item.relevance_score) * 10)))
        return scores


def build_relevance_scorer(settings: Config | None = None) -> RelevanceScorer | None:
    """Scorer selected by RERANK_PROVIDER, or None when the rerank stage is disabled."""
    settings = settings or config
    if not settings.RERANK_ENABLED:
        return None
    if settings.RERANK_PROVIDER == "cohere":
        return CohereRelevanceScorer(settings)
    return LLMRelevanceScorer(settings)

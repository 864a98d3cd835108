"""
Answer Synthesizer
Generates a cited analysis of the top results with the chat model.
Sources are numbered [1], [2], ... in the order they are listed in the prompt.
"""

import re
import time

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage

from caselaw_search.config.logging_config import setup_logger
from caselaw_search.config.settings import Config, config
from caselaw_search.services.common.llm import build_chat_model, complete_text
from caselaw_search.services.models import Candidate, QueryAnalysis

logger = setup_logger(__name__)

ANALYSIS_UNAVAILABLE = "Analysis unavailable."

# Reasoning models may prefix the answer with their scratchpad
_THINK_BLOCK_RE = re.compile(r"<think>.*?</think>", re.DOTALL | re.IGNORECASE)

SYSTEM_PROMPT = """You are a Hong Kong legal research assistant.

Answer the user's question using ONLY the numbered case excerpts provided.

RULES:
1. Cite every legal or factual statement with the excerpt number in square brackets, e.g. [1] or [2][4]
2. Use only the numbers given; never cite cases that are not in the excerpts
3. Focus on the most relevant cases; if some excerpts are off-topic, say so briefly
4. If the excerpts do not answer the question, state that plainly instead of guessing

FORMAT:
- A direct answer (1-2 sentences)
- The analysis, with inline citations
- A short list of the key cases relied on"""


def format_source(index: int, candidate: Candidate, max_chars: int) -> str:
    """One numbered context entry: citation metadata line, then truncated text."""
    p = candidate.passage
    meta = [p.citation or "No citation"]
    if p.source_category:
        meta.append(p.source_category.upper())
    if p.date:
        meta.append(p.date)
    header = f"[{index}] {p.title or 'Unknown case'} ({', '.join(meta)})"
    header += f" [Score: {candidate.score:.2f}]"
    if candidate.relevance_score is not None:
        header += f" [Relevance: {candidate.relevance_score}/10]"
    return f"{header}\n{p.text[:max_chars]}"


def build_guidance(query: str, analysis: QueryAnalysis | None = None) -> str:
    """Deterministic answer for an empty result set."""
    lines = [f'No relevant cases found for "{query}".']
    concepts = list(analysis.legal_concepts) if analysis else []
    if concepts:
        lines.append(f"Detected legal concepts: {', '.join(concepts)}.")
    broader = concepts or (list(analysis.keywords) if analysis else [])
    if broader:
        lines.append("Try a broader search, for example: " + "; ".join(f'"{term}"' for term in broader[:3]) + ".")
    else:
        lines.append("Try fewer words, a general area of law, or remove the court filter.")
    return "\n".join(lines)


class AnswerSynthesizer:
    """Cited synthesis over the fused results"""

    def __init__(self, settings: Config | None = None, llm: BaseChatModel | None = None):
        settings = settings or config
        self.max_results = settings.ANSWER_CONTEXT_RESULTS
        self.max_chars = settings.ANSWER_CONTEXT_CHARS
        self.timeout = settings.SYNTHESIS_TIMEOUT_SECONDS
        self._settings = settings
        self._llm = llm

    def _get_llm(self) -> BaseChatModel:
        if self._llm is None:
            s = self._settings
            self._llm = build_chat_model(
                s.CHAT_MODEL,
                temperature=s.LLM_TEMPERATURE,
                max_tokens=s.LLM_MAX_TOKENS,
                settings=s,
                timeout=self.timeout,
            )
        return self._llm

    def build_context(self, results: list[Candidate]) -> str:
        top = results[: self.max_results]
        return "\n\n---\n\n".join(format_source(i, c, self.max_chars) for i, c in enumerate(top, 1))

    async def synthesize(
        self, query: str, analysis: QueryAnalysis | None, results: list[Candidate]
    ) -> str:
        """
        Generate the answer text.

        Empty results skip the model and return guidance; a failed or empty
        model call returns ANALYSIS_UNAVAILABLE. Never raises.
        """
        if not results:
            return build_guidance(query, analysis)

        user_content = f"Question: {query}\n\nCase excerpts:\n{self.build_context(results)}"
        messages = [SystemMessage(content=SYSTEM_PROMPT), HumanMessage(content=user_content)]

        logger.info("Calling LLM for analysis...")
        api_start = time.time()
        try:
            text = await complete_text(self._get_llm(), messages, timeout=self.timeout)
        except Exception as e:
            logger.warning("Answer synthesis failed: %s", e)
            return ANALYSIS_UNAVAILABLE
        logger.info(f"LLM done in {time.time() - api_start:.1f}s")

        answer = _THINK_BLOCK_RE.sub("", text).strip()
        return answer or ANALYSIS_UNAVAILABLE

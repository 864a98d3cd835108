"""
Query Analyzer
Decomposes a natural-language legal query into sub-queries, search keywords
and detected legal concepts. Uses a small chat model when available and a
deterministic heuristic otherwise; analyze() never raises.
"""

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from caselaw_search.config.logging_config import setup_logger
from caselaw_search.config.settings import Config, config
from caselaw_search.services.common.llm import build_chat_model, complete_text
from caselaw_search.services.models import QUERY_TYPES, QueryAnalysis
from caselaw_search.utils.legal_keywords import STOPWORDS, detect_legal_concepts, tokenize
from caselaw_search.utils.model_output import ParseResult, extract_json_object

logger = setup_logger(__name__)

# Heuristic keywords must be strictly longer than this
HEURISTIC_MIN_WORD_LENGTH = 4
COMPLEX_QUERY_WORDS = 8

ANALYSIS_SYSTEM_PROMPT = """You are a search planner for a Hong Kong case-law database.
Break the user's query down for retrieval.

Return ONLY a JSON object with these keys:
- "subQueries": up to 3 short reformulations of the query, each searchable on its own
- "keywords": up to 5 distinctive lower-case legal terms likely to appear verbatim in judgments
- "legalConcepts": the legal doctrines or areas of law the query is about
- "queryType": one of "simple", "complex", "factual"

Example:
{"subQueries": ["duty of care owed by occupiers", "standard of care negligence"], "keywords": ["negligence", "duty of care"], "legalConcepts": ["negligence"], "queryType": "simple"}"""


class AnalysisPayload(BaseModel):
    """Expected shape of the model's JSON answer."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    sub_queries: list[str] = Field(default_factory=list, alias="subQueries")
    keywords: list[str] = Field(default_factory=list)
    legal_concepts: list[str] = Field(default_factory=list, alias="legalConcepts")
    query_type: str = Field(default="", alias="queryType")


def _dedupe(items, lower: bool = False) -> list[str]:
    out: list[str] = []
    seen: set[str] = set()
    for item in items:
        text = " ".join(str(item).split())
        if lower:
            text = text.lower()
        key = text.lower()
        if not text or key in seen:
            continue
        seen.add(key)
        out.append(text)
    return out


def heuristic_keywords(query: str, max_keywords: int = 5) -> list[str]:
    """Words longer than 4 characters that are not stop words, in query order."""
    words = [w for w in tokenize(query) if len(w) > HEURISTIC_MIN_WORD_LENGTH and w not in STOPWORDS]
    return _dedupe(words, lower=True)[:max_keywords]


def heuristic_query_type(query: str) -> str:
    return "complex" if len(query.split()) > COMPLEX_QUERY_WORDS else "simple"


def fallback_analysis(query: str, max_keywords: int = 5) -> QueryAnalysis:
    """Deterministic analysis used when the model is disabled, down, or unparsable."""
    return QueryAnalysis(
        original_query=query,
        sub_queries=(query,),
        keywords=tuple(heuristic_keywords(query, max_keywords)),
        legal_concepts=tuple(detect_legal_concepts(query)),
        query_type=heuristic_query_type(query),
        source="heuristic",
    )


def parse_analysis(text: str | None) -> ParseResult:
    """Decode the model's answer against AnalysisPayload."""
    decoded = extract_json_object(text)
    if not decoded.ok:
        return decoded
    try:
        payload = AnalysisPayload.model_validate(decoded.value)
    except ValidationError as e:
        return ParseResult.failure(f"schema mismatch: {e.error_count()} error(s)")
    if not payload.sub_queries and not payload.keywords:
        return ParseResult.failure("no sub-queries or keywords")
    return ParseResult.success(payload)


class QueryAnalyzer:
    """Query decomposition with a deterministic fallback"""

    def __init__(
        self,
        settings: Config | None = None,
        llm: BaseChatModel | None = None,
    ):
        settings = settings or config
        self.enabled = settings.QUERY_ANALYSIS_ENABLED
        self.max_sub_queries = settings.MAX_SUB_QUERIES
        self.max_keywords = settings.MAX_KEYWORDS
        self.timeout = settings.CALL_TIMEOUT_SECONDS
        self._settings = settings
        self._llm = llm

    def _get_llm(self) -> BaseChatModel:
        """Lazy load the analysis model (only when needed)"""
        if self._llm is None:
            self._llm = build_chat_model(
                self._settings.ANALYSIS_MODEL, temperature=0.1, max_tokens=300, settings=self._settings
            )
        return self._llm

    async def analyze(self, query: str) -> QueryAnalysis:
        """Analyse *query*; always returns a usable QueryAnalysis."""
        query = " ".join((query or "").split())
        if not self.enabled or not query:
            return fallback_analysis(query, self.max_keywords)

        try:
            text = await complete_text(
                self._get_llm(),
                [SystemMessage(content=ANALYSIS_SYSTEM_PROMPT), HumanMessage(content=f"Query: {query}")],
                timeout=self.timeout,
            )
        except Exception as e:
            logger.warning("Query analysis model unavailable, using heuristic: %s", e)
            return fallback_analysis(query, self.max_keywords)

        parsed = parse_analysis(text)
        if not parsed.ok:
            logger.warning("Query analysis output unusable (%s), using heuristic", parsed.error)
            return fallback_analysis(query, self.max_keywords)

        analysis = self._from_payload(query, parsed.value)
        logger.info(
            "Query analysis → %s sub-queries, keywords=%s, type=%s",
            len(analysis.sub_queries),
            list(analysis.keywords),
            analysis.query_type,
        )
        return analysis

    def _from_payload(self, query: str, payload: AnalysisPayload) -> QueryAnalysis:
        sub_queries = _dedupe(payload.sub_queries)[: self.max_sub_queries] or [query]
        keywords = _dedupe(payload.keywords, lower=True)[: self.max_keywords] or heuristic_keywords(
            query, self.max_keywords
        )
        concepts = _dedupe(payload.legal_concepts) or detect_legal_concepts(query)
        query_type = payload.query_type.strip().lower()
        if query_type not in QUERY_TYPES:
            query_type = heuristic_query_type(query)
        return QueryAnalysis(
            original_query=query,
            sub_queries=tuple(sub_queries),
            keywords=tuple(keywords),
            legal_concepts=tuple(concepts),
            query_type=query_type,
            source="llm",
        )

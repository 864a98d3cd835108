"""
Configuration settings for the Case-Law Search service
"""

import os
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

# find_dotenv() locates .env regardless of the current working directory;
# falls back to the project root next to the package.
_dotenv_path = find_dotenv(usecwd=True) or str(Path(__file__).resolve().parent.parent.parent / ".env")
load_dotenv(_dotenv_path)

DEFAULT_EMBEDDING_API_URL = (
    "https://api-inference.huggingface.co/pipeline/feature-extraction/BAAI/bge-small-en-v1.5"
)
DEFAULT_LLM_API_URL = "https://apis.iflow.cn/v1"


def _env_bool(name: str, default: str) -> bool:
    return (os.getenv(name, default)).strip().lower() in ("true", "1", "yes")


def _env_str(*names: str, default: str = "") -> str:
    """First non-empty value among several env var names."""
    for name in names:
        value = (os.getenv(name) or "").strip()
        if value:
            return value
    return default


# ============================================
# Environment-based Configuration
# ============================================


class Config:
    """
    Centralized configuration loaded from environment variables.

    Built once at process start and handed to every client constructor.
    Constructing a new instance re-reads the environment.
    """

    def __init__(self) -> None:
        # Case-metadata store (Supabase / PostgREST)
        self.SUPABASE_URL: str = _env_str("SUPABASE_URL")
        self.SUPABASE_KEY: str = _env_str("SUPABASE_KEY", "SUPABASE_ANON_KEY")
        self.SUPABASE_CHUNKS_TABLE: str = _env_str("SUPABASE_CHUNKS_TABLE", default="case_chunks")

        # Vector store (Qdrant)
        self.QDRANT_URL: str = _env_str("QDRANT_URL").rstrip("/")
        self.QDRANT_API_KEY: str = _env_str("QDRANT_API_KEY")
        self.QDRANT_COLLECTION: str = _env_str("QDRANT_COLLECTION", default="legal_chunks")

        # Embedding service (bge-small, 384 dims)
        self.EMBEDDING_API_URL: str = _env_str("EMBEDDING_API_URL", default=DEFAULT_EMBEDDING_API_URL)
        self.HF_API_TOKEN: str = _env_str("HF_API_TOKEN")
        self.EMBEDDING_DIMENSIONS: int = int(os.getenv("EMBEDDING_DIMENSIONS", "384"))

        # Chat-completion endpoint (OpenAI-compatible)
        self.LLM_API_URL: str = _env_str("LLM_API_URL", "IFLOW_API_URL", default=DEFAULT_LLM_API_URL)
        self.LLM_API_KEY: str = _env_str("LLM_API_KEY", "IFLOW_API_KEY")
        # Small/fast model for query analysis and relevance scoring; stronger model for the answer.
        self.ANALYSIS_MODEL: str = os.getenv("ANALYSIS_MODEL", "glm-4-flash")
        self.RERANK_MODEL: str = os.getenv("RERANK_MODEL", "glm-4-flash")
        self.CHAT_MODEL: str = os.getenv("CHAT_MODEL", "deepseek-r1")
        self.LLM_MAX_TOKENS: int = int(os.getenv("LLM_MAX_TOKENS", "1200"))
        self.LLM_TEMPERATURE: float = float(os.getenv("LLM_TEMPERATURE", "0.2"))

        # Vector retrieval. Sub-query matches are noisier, so they need a higher bar.
        self.MATCH_THRESHOLD: float = float(os.getenv("MATCH_THRESHOLD", "0.25"))
        self.SUBQUERY_MATCH_THRESHOLD: float = float(os.getenv("SUBQUERY_MATCH_THRESHOLD", "0.35"))
        self.VECTOR_SEARCH_TOP_K: int = int(os.getenv("VECTOR_SEARCH_TOP_K", "25"))
        self.SUBQUERY_SEARCH_TOP_K: int = int(os.getenv("SUBQUERY_SEARCH_TOP_K", "10"))

        # Lexical retrieval
        self.LEXICAL_LIMIT_PER_KEYWORD: int = int(os.getenv("LEXICAL_LIMIT_PER_KEYWORD", "8"))
        self.LEXICAL_MAX_KEYWORDS: int = int(os.getenv("LEXICAL_MAX_KEYWORDS", "4"))
        self.LEXICAL_BASELINE_SCORE: float = float(os.getenv("LEXICAL_BASELINE_SCORE", "0.5"))

        # Fusion
        self.FINAL_TOP_K: int = int(os.getenv("FINAL_TOP_K", "10"))
        self.MAX_PER_DOCUMENT: int = int(os.getenv("MAX_PER_DOCUMENT", "3"))
        self.SIGNAL_BOOST: float = float(os.getenv("SIGNAL_BOOST", "0.1"))
        self.KEYWORD_BOOST: float = float(os.getenv("KEYWORD_BOOST", "0.15"))
        self.SCORE_CAP: float = float(os.getenv("SCORE_CAP", "0.99"))

        # Rerank stage. RERANK_PROVIDER: "llm" (default) or "cohere".
        self.RERANK_ENABLED: bool = _env_bool("RERANK_ENABLED", "true")
        self.RERANK_PROVIDER: str = os.getenv("RERANK_PROVIDER", "llm").strip().lower()
        self.RERANK_CANDIDATES: int = int(os.getenv("RERANK_CANDIDATES", "15"))
        self.RERANK_CUTOFF: int = int(os.getenv("RERANK_CUTOFF", "4"))
        self.RERANK_TEXT_CHARS: int = int(os.getenv("RERANK_TEXT_CHARS", "300"))
        self.RERANK_RELEVANCE_WEIGHT: float = float(os.getenv("RERANK_RELEVANCE_WEIGHT", "0.7"))
        self.COHERE_API_KEY: str = _env_str("COHERE_API_KEY")
        self.COHERE_RERANK_MODEL: str = _env_str("COHERE_RERANK_MODEL", default="rerank-v3.5")

        # Query analysis
        self.QUERY_ANALYSIS_ENABLED: bool = _env_bool("QUERY_ANALYSIS_ENABLED", "true")
        self.MAX_SUB_QUERIES: int = int(os.getenv("MAX_SUB_QUERIES", "3"))
        self.MAX_KEYWORDS: int = int(os.getenv("MAX_KEYWORDS", "5"))

        # Answer synthesis
        self.ANSWER_CONTEXT_RESULTS: int = int(os.getenv("ANSWER_CONTEXT_RESULTS", "6"))
        self.ANSWER_CONTEXT_CHARS: int = int(os.getenv("ANSWER_CONTEXT_CHARS", "500"))

        # Per-call timeout for every upstream request (embedding, vector, lexical, LLM)
        self.CALL_TIMEOUT_SECONDS: float = float(os.getenv("CALL_TIMEOUT_SECONDS", "8"))
        # Answer generation streams up to LLM_MAX_TOKENS from a reasoning model (think block first);
        # 20-40s is typical, so it gets its own budget instead of CALL_TIMEOUT_SECONDS
        self.SYNTHESIS_TIMEOUT_SECONDS: float = float(os.getenv("SYNTHESIS_TIMEOUT_SECONDS", "60"))

        # Query length limit (chars) - reject oversize queries to avoid abuse and cost
        self.MAX_QUERY_LENGTH: int = int(os.getenv("MAX_QUERY_LENGTH", "2000"))

        # Include exception text in 500 responses (development only)
        self.DEBUG_ERRORS: bool = _env_bool("DEBUG_ERRORS", "false")


# Singleton instance
config = Config()


def validate_config_dependencies(cfg: Config | None = None) -> list[str]:
    """Return cross-field configuration errors (empty list when the config is sane)."""
    cfg = cfg or config
    errors: list[str] = []

    for name in ("MATCH_THRESHOLD", "SUBQUERY_MATCH_THRESHOLD"):
        value = getattr(cfg, name)
        if not 0.0 < value < 1.0:
            errors.append(f"{name} must be between 0 and 1 (got {value})")
    if cfg.SUBQUERY_MATCH_THRESHOLD < cfg.MATCH_THRESHOLD:
        errors.append("SUBQUERY_MATCH_THRESHOLD must not be lower than MATCH_THRESHOLD")

    for name in (
        "VECTOR_SEARCH_TOP_K",
        "SUBQUERY_SEARCH_TOP_K",
        "LEXICAL_LIMIT_PER_KEYWORD",
        "FINAL_TOP_K",
        "MAX_PER_DOCUMENT",
        "RERANK_CANDIDATES",
        "LLM_MAX_TOKENS",
        "EMBEDDING_DIMENSIONS",
        "ANSWER_CONTEXT_RESULTS",
        "ANSWER_CONTEXT_CHARS",
    ):
        if getattr(cfg, name) <= 0:
            errors.append(f"{name} must be positive")

    if not 0.0 < cfg.SCORE_CAP < 1.0:
        errors.append(f"SCORE_CAP must be below 1.0 (got {cfg.SCORE_CAP})")
    if not 0.0 <= cfg.LEXICAL_BASELINE_SCORE < cfg.SCORE_CAP:
        errors.append("LEXICAL_BASELINE_SCORE must be between 0 and SCORE_CAP")
    if not 0 <= cfg.RERANK_CUTOFF <= 10:
        errors.append(f"RERANK_CUTOFF must be on the 0-10 scale (got {cfg.RERANK_CUTOFF})")
    if not 0.0 <= cfg.RERANK_RELEVANCE_WEIGHT <= 1.0:
        errors.append("RERANK_RELEVANCE_WEIGHT must be between 0 and 1")
    if cfg.CALL_TIMEOUT_SECONDS <= 0 or cfg.SYNTHESIS_TIMEOUT_SECONDS <= 0:
        errors.append("CALL_TIMEOUT_SECONDS and SYNTHESIS_TIMEOUT_SECONDS must be positive")

    if cfg.RERANK_PROVIDER not in ("llm", "cohere"):
        errors.append(f"RERANK_PROVIDER must be 'llm' or 'cohere' (got {cfg.RERANK_PROVIDER!r})")
    if cfg.RERANK_ENABLED and cfg.RERANK_PROVIDER == "cohere" and not cfg.COHERE_API_KEY:
        errors.append("RERANK_PROVIDER=cohere but COHERE_API_KEY is missing")

    for name in ("ANALYSIS_MODEL", "RERANK_MODEL", "CHAT_MODEL"):
        if not getattr(cfg, name).strip():
            errors.append(f"{name} must not be empty")

    return errors


def validate_env_for_app(cfg: Config | None = None) -> None:
    """
    Validate required settings for the search API. Call at startup.
    Raises SystemExit with clear message if anything required is missing.
    """
    cfg = cfg or config
    required = {
        "SUPABASE_URL": cfg.SUPABASE_URL,
        "SUPABASE_KEY": cfg.SUPABASE_KEY,
        "QDRANT_URL": cfg.QDRANT_URL,
        "LLM_API_KEY": cfg.LLM_API_KEY,
    }
    missing = [k for k, v in required.items() if not v]
    if missing:
        msg = f"Missing required env vars: {', '.join(missing)}. Set them in .env or environment."
        raise SystemExit(msg)

    errors = validate_config_dependencies(cfg)
    if errors:
        raise SystemExit("Invalid configuration: " + "; ".join(errors))

# © 2026 Crest Advisory Group LLC. All rights reserved.
# PROPRIETARY AND CONFIDENTIAL. Unauthorized copying, distribution, or use is strictly prohibited.

"""
Shared query vocabulary: stop words and curated legal concepts.

Single source of truth, imported by the query analyzer and the lexical
retriever so both drop the same filler words.
"""

import re

# Words that match nearly every judgment and carry no topical signal.
STOPWORDS: frozenset[str] = frozenset(
    {
        # Question / filler words
        "what",
        "when",
        "where",
        "which",
        "while",
        "whom",
        "whose",
        "does",
        "about",
        "tell",
        "please",
        "find",
        "show",
        "there",
        "their",
        "these",
        "those",
        "would",
        "could",
        "should",
        "shall",
        # Function words
        "from",
        "with",
        "that",
        "this",
        "have",
        "been",
        "were",
        "into",
        "under",
        "over",
        "than",
        "then",
        "them",
        "they",
        "also",
        "such",
        "other",
        "being",
        "after",
        "before",
        "between",
        "against",
        # Corpus-wide terms
        "case",
        "cases",
        "court",
        "courts",
        "judgment",
        "judgments",
        "decision",
        "decisions",
        "hong",
        "kong",
    }
)

# Curated domain terms detected by plain membership when the model is unavailable.
# Multi-word phrases are matched as substrings of the normalised query.
LEGAL_CONCEPTS: tuple[str, ...] = (
    # --- Tort -------------------------------------------------------------
    "negligence",
    "duty of care",
    "causation",
    "remoteness",
    "contributory negligence",
    "personal injury",
    "medical negligence",
    "occupiers liability",
    "nuisance",
    "defamation",
    "vicarious liability",
    # --- Contract ---------------------------------------------------------
    "breach of contract",
    "misrepresentation",
    "frustration",
    "repudiation",
    "estoppel",
    "specific performance",
    "liquidated damages",
    "damages",
    "consideration",
    # --- Equity / property ------------------------------------------------
    "fiduciary duty",
    "constructive trust",
    "adverse possession",
    "injunction",
    "mortgage",
    "tenancy",
    "landlord",
    # --- Criminal ---------------------------------------------------------
    "manslaughter",
    "murder",
    "fraud",
    "theft",
    "robbery",
    "money laundering",
    "drug trafficking",
    "sentencing",
    "bail",
    "self-defence",
    "mens rea",
    # --- Public / procedure ----------------------------------------------
    "judicial review",
    "legitimate expectation",
    "procedural fairness",
    "natural justice",
    "non-refoulement",
    "immigration",
    "discrimination",
    "unfair dismissal",
    "employment",
    "arbitration",
    "limitation period",
    "costs",
    "contempt",
    "appeal",
    "winding up",
    "bankruptcy",
    "copyright",
    "trade mark",
    "patent",
)

_WORD_RE = re.compile(r"[a-z0-9][a-z0-9'\-]*")


def tokenize(text: str | None) -> list[str]:
    """Lower-case word tokens with surrounding punctuation stripped."""
    if not text:
        return []
    return [w.strip("'-") for w in _WORD_RE.findall(text.lower()) if w.strip("'-")]


def is_substantive(term: str, min_length: int = 4) -> bool:
    """True for terms long enough and specific enough to search on."""
    term = term.strip().lower()
    return len(term) >= min_length and term not in STOPWORDS


def detect_legal_concepts(text: str | None) -> list[str]:
    """Curated concepts present in *text*, in vocabulary order."""
    normalised = " ".join(tokenize(text))
    if not normalised:
        return []
    padded = f" {normalised} "
    return [concept for concept in LEGAL_CONCEPTS if f" {concept} " in padded]

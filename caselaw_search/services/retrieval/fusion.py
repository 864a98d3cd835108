"""
Fusion & Rerank Engine
Combines candidate lists from several retrieval signals into one ranked,
deduplicated, diversity-bounded result list.

Stages, in order:
    1. merge by chunk id, boosting candidates found by more than one signal
    2. keyword-presence boost
    3. optional relevance rerank of the top-N (pluggable scorer)
    4. sort by active score, ties broken by id
    5. per-document diversity cap, stop at K

All constants come from FusionSettings; the engine does no environment lookup.
Input candidates are copied, never mutated.
"""

from dataclasses import dataclass, field

from caselaw_search.config.logging_config import setup_logger
from caselaw_search.config.settings import Config
from caselaw_search.services.models import SIGNAL_AI_RERANK, Candidate
from caselaw_search.services.protocols import RelevanceScorer

logger = setup_logger(__name__)


@dataclass(frozen=True)
class FusionSettings:
    """Scoring constants for one fusion pass"""

    final_top_k: int = 10
    max_per_parent: int = 3
    signal_boost: float = 0.1
    keyword_boost: float = 0.15
    score_cap: float = 0.99
    rerank_candidates: int = 15
    rerank_cutoff: int = 4
    relevance_weight: float = 0.7

    @classmethod
    def from_config(cls, cfg: Config) -> "FusionSettings":
        return cls(
            final_top_k=cfg.FINAL_TOP_K,
            max_per_parent=cfg.MAX_PER_DOCUMENT,
            signal_boost=cfg.SIGNAL_BOOST,
            keyword_boost=cfg.KEYWORD_BOOST,
            score_cap=cfg.SCORE_CAP,
            rerank_candidates=cfg.RERANK_CANDIDATES,
            rerank_cutoff=cfg.RERANK_CUTOFF,
            relevance_weight=cfg.RERANK_RELEVANCE_WEIGHT,
        )


@dataclass
class FusionResult:
    results: list[Candidate] = field(default_factory=list)
    merged_count: int = 0
    rerank: dict = field(default_factory=lambda: {"applied": False})


def _similarity_key(c: Candidate) -> tuple:
    return (-c.score, str(c.id))


class FusionEngine:
    """Stateless fusion over request-local candidate lists"""

    def __init__(self, settings: FusionSettings | None = None):
        self.settings = settings or FusionSettings()

    # ------------------------------------------------------------------
    # 1. Merge
    # ------------------------------------------------------------------
    def merge(self, signal_lists: list[tuple[str, list[Candidate]]]) -> list[Candidate]:
        """
        Deduplicate by id across all signals.

        A candidate's base score is the best raw score any signal gave it; the
        agreement boost depends only on how many distinct signals found it, so
        the result is the same whatever order the lists arrive in.
        """
        merged: dict = {}
        for signal, candidates in signal_lists:
            for candidate in candidates or []:
                if candidate.id is None:
                    continue
                existing = merged.get(candidate.id)
                if existing is None:
                    entry = candidate.copy()
                    entry.base_score = candidate.score
                    entry.matched_signals.add(signal)
                    merged[candidate.id] = entry
                    continue
                existing.base_score = max(existing.base_score, candidate.score)
                existing.matched_signals |= candidate.matched_signals
                existing.matched_signals.add(signal)

        s = self.settings
        for entry in merged.values():
            reinforcing = len(entry.matched_signals) - 1
            entry.score = entry.base_score
            if reinforcing > 0:
                boosted = min(s.score_cap, entry.base_score * (1 + s.signal_boost * reinforcing))
                entry.score = max(entry.base_score, boosted)
        return list(merged.values())

    # ------------------------------------------------------------------
    # 2. Keyword presence
    # ------------------------------------------------------------------
    def apply_keyword_boost(self, candidates: list[Candidate], keywords) -> list[Candidate]:
        terms = [k.lower() for k in keywords or [] if k and k.strip()]
        if not terms:
            return candidates
        s = self.settings
        for c in candidates:
            text = c.text.lower()
            matches = sum(1 for t in terms if t in text)
            if matches:
                boosted = min(s.score_cap, c.score * (1 + s.keyword_boost * matches))
                c.score = max(c.score, boosted)
        return candidates

    # ------------------------------------------------------------------
    # 3. Rerank
    # ------------------------------------------------------------------
    def combined_score(self, c: Candidate) -> float:
        """Relevance-dominated sort key used after a successful rerank."""
        w = self.settings.relevance_weight
        return w * (c.relevance_score or 0) + (1 - w) * (c.score * 10)

    async def rerank(
        self, query: str, ranked: list[Candidate], scorer: RelevanceScorer
    ) -> tuple[list[Candidate], dict]:
        """
        Score the top-N of an already similarity-ranked list.

        Returns the reordered list and a description of what happened. Scorer
        failure or an all-filtered outcome leaves *ranked* as it was.
        """
        s = self.settings
        head = ranked[: s.rerank_candidates]
        tail = ranked[s.rerank_candidates :]
        if not head:
            return ranked, {"applied": False}

        try:
            scores = await scorer.score(query, head)
        except Exception as e:
            logger.warning("Relevance scorer raised, skipping rerank: %s", e)
            scores = None
        if scores is None:
            return ranked, {"applied": False, "reason": "scorer unavailable"}

        rescored: list[Candidate] = []
        for candidate, relevance in zip(head, scores, strict=False):
            entry = candidate.copy()
            entry.relevance_score = relevance
            entry.matched_signals.add(SIGNAL_AI_RERANK)
            rescored.append(entry)

        kept = [c for c in rescored if c.relevance_score >= s.rerank_cutoff]
        dropped = len(rescored) - len(kept)
        if not kept:
            logger.info("Rerank filtered all %s candidates; keeping similarity order", len(rescored))
            return ranked, {"applied": False, "reason": "all below cutoff", "scored": len(rescored)}

        kept.sort(key=lambda c: (-self.combined_score(c), str(c.id)))
        logger.info("Rerank scored %s, dropped %s below %s", len(rescored), dropped, s.rerank_cutoff)
        return kept + tail, {"applied": True, "scored": len(rescored), "dropped": dropped}

    # ------------------------------------------------------------------
    # 4-5. Sort and diversity cap
    # ------------------------------------------------------------------
    def rank(self, candidates: list[Candidate]) -> list[Candidate]:
        return sorted(candidates, key=_similarity_key)

    def diversify(self, ranked: list[Candidate]) -> list[Candidate]:
        """Walk *ranked* keeping at most max_per_parent per document; stop at final_top_k."""
        s = self.settings
        per_parent: dict = {}
        out: list[Candidate] = []
        for c in ranked:
            if len(out) >= s.final_top_k:
                break
            key = c.passage.group_key
            if per_parent.get(key, 0) >= s.max_per_parent:
                continue
            per_parent[key] = per_parent.get(key, 0) + 1
            out.append(c)
        return out

    async def fuse(
        self,
        signal_lists: list[tuple[str, list[Candidate]]],
        keywords=(),
        query: str = "",
        scorer: RelevanceScorer | None = None,
    ) -> FusionResult:
        """Run every stage over the tagged candidate lists."""
        merged = self.merge(signal_lists)
        if not merged:
            return FusionResult()

        ranked = self.rank(self.apply_keyword_boost(merged, keywords))
        rerank_info: dict = {"applied": False}
        if scorer is not None:
            ranked, rerank_info = await self.rerank(query, ranked, scorer)

        return FusionResult(results=self.diversify(ranked), merged_count=len(merged), rerank=rerank_info)

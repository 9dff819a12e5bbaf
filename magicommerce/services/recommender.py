# =============================================
# File: magicommerce/services/recommender.py
# Purpose: Rank a bounded candidate pool with the completion service, falling back to a
#          deterministic ordering when the service fails or answers with unusable output
# =============================================
from __future__ import annotations
import asyncio
from typing import Any, Dict, List, Optional, Sequence, Tuple

from loguru import logger

from ..db.repo import ProductFilter, ProductStore
from ..utils import metrics, slog
from ..utils.config import PersonalizationConfig
from ..utils.parsing import Malformed, coerce_id, coerce_score, parse_json
from ..utils.prompting import build_ranking_messages
from .behavior import BehaviorStore
from .gateway import CompletionGateway, UpstreamError
from .preferences import PreferenceExtractor
from .schemas import RankingContext, Recommendation

POPULAR_REASON = "Popular product"
# fallback scores decay by 0.1 per position but stay above the confidence floor
_FALLBACK_MIN_SCORE = 0.35


def fallback_ranking(candidates: Sequence[Any], limit: int) -> List[Recommendation]:
    """
    Candidates in fetched order, scored 1.0, 0.9, 0.8, ...
    A pure function of input order: same candidates, same output.
    """
    return [
        Recommendation.from_product(
            p,
            score=max(round(1.0 - i * 0.1, 2), _FALLBACK_MIN_SCORE),
            reason=POPULAR_REASON,
        )
        for i, p in enumerate(candidates[: max(0, limit)])
    ]


def merge_rankings(
    entries: Sequence[Any],
    candidates: Sequence[Any],
    floor: float,
    limit: int,
) -> List[Recommendation]:
    """
    Keep model entries that point at a real candidate with a score above the
    floor, best score first (candidate order breaks ties), at most `limit`.
    Never pads.
    """
    by_id = {p.id: p for p in candidates}
    position = {p.id: i for i, p in enumerate(candidates)}
    picked: Dict[int, Tuple[float, str]] = {}

    for entry in entries:
        if not isinstance(entry, dict):
            continue
        pid = coerce_id(entry.get("id"))
        score = coerce_score(entry.get("score"))
        if pid is None or score is None:
            continue
        if score <= floor:
            continue
        if pid not in by_id:
            # hallucinated id, or one of the excluded products
            continue
        if pid in picked:
            continue
        picked[pid] = (score, str(entry.get("reason") or "").strip())

    ordered = sorted(picked.items(), key=lambda kv: (-kv[1][0], position[kv[0]]))
    return [
        Recommendation.from_product(by_id[pid], score=score, reason=reason)
        for pid, (score, reason) in ordered[:limit]
    ]


class RecommendationRanker:
    def __init__(
        self,
        behavior: BehaviorStore,
        preferences: PreferenceExtractor,
        products: ProductStore,
        gateway: CompletionGateway,
        config: PersonalizationConfig,
    ) -> None:
        self._behavior = behavior
        self._preferences = preferences
        self._products = products
        self._gateway = gateway
        self._config = config

    async def _candidates(self, context: RankingContext) -> List[Any]:
        excluded = context.excluded_ids()
        pool = await asyncio.to_thread(
            self._products.find_products,
            ProductFilter(exclude_ids=excluded, limit=self._config.candidate_pool_size),
        )
        skip = set(excluded)
        return [p for p in pool if p.id not in skip]

    def _fallback(self, user_id: Optional[str], candidates: Sequence[Any], limit: int, cause: str) -> List[Recommendation]:
        metrics.record_fallback("ranker")
        slog.log_event(
            "recommend.fallback",
            user=slog.uhash(user_id),
            cause=cause,
            candidates=len(candidates),
            limit=limit,
        )
        return fallback_ranking(candidates, limit)

    async def rank(self, user_id: Optional[str], context: Optional[RankingContext] = None) -> List[Recommendation]:
        """
        Returns up to `context.limit` recommendations drawn only from the
        candidate pool. Completion failures never raise; product / event store
        failures do.
        """
        context = context or RankingContext(limit=self._config.default_limit)
        limit = context.limit
        if limit < 1:
            return []

        events, prefs = await asyncio.gather(
            self._behavior.recent_events(user_id, self._config.behavior_history_limit),
            self._preferences.extract(user_id),
        )

        candidates = await self._candidates(context)
        if not candidates:
            logger.info(f"[ranker] user={slog.uhash(user_id)} empty candidate pool")
            return []

        messages = build_ranking_messages(
            events[: self._config.prompt_behavior_events],
            prefs,
            context.model_dump(),
            candidates,
            limit,
        )
        try:
            raw = await self._gateway.complete(
                messages,
                max_tokens=800,
                temperature=0.4,
                timeout=self._config.completion_timeout_s,
            )
        except UpstreamError as e:
            return self._fallback(user_id, candidates, limit, cause=e.kind)

        result = parse_json(raw, list)
        if isinstance(result, Malformed):
            return self._fallback(user_id, candidates, limit, cause=result.reason)

        recs = merge_rankings(result.data, candidates, self._config.confidence_floor, limit)
        logger.info(
            f"[ranker] user={slog.uhash(user_id)} candidates={len(candidates)} "
            f"ranked={len(result.data)} kept={len(recs)} limit={limit}"
        )
        return recs

# =============================================
# File: magicommerce/services/cart.py
# Purpose: Complementary-item suggestions and free-text insights for a cart
# =============================================
from __future__ import annotations
import asyncio
from typing import Any, Dict, Iterable, List, Optional, Tuple

from loguru import logger

from ..db.repo import ProductFilter, ProductStore
from ..utils import metrics, slog
from ..utils.config import PersonalizationConfig
from ..utils.parsing import Malformed, coerce_id, coerce_score, parse_json
from ..utils.prompting import build_cart_messages
from .gateway import CompletionGateway, UpstreamError
from .preferences import PreferenceExtractor
from .schemas import CartAnalysis, Recommendation


def _unique_ids(ids: Iterable[Any]) -> List[int]:
    out: List[int] = []
    for raw in ids or []:
        pid = coerce_id(raw)
        if pid is not None and pid not in out:
            out.append(pid)
    return out


class CartAnalyzer:
    """
    Unlike the ranker there is no heuristic stand-in for "what goes with this
    cart": when the completion service fails or answers garbage the analysis
    is empty.
    """

    def __init__(
        self,
        preferences: PreferenceExtractor,
        products: ProductStore,
        gateway: CompletionGateway,
        config: PersonalizationConfig,
    ) -> None:
        self._preferences = preferences
        self._products = products
        self._gateway = gateway
        self._config = config

    def _empty(self, user_id: Optional[str], cause: str) -> CartAnalysis:
        metrics.record_fallback("cart")
        slog.log_event("cart.empty_analysis", user=slog.uhash(user_id), cause=cause)
        return CartAnalysis()

    def _pick(self, entries: Any, cart_ids: List[int]) -> List[Tuple[int, float, str]]:
        if not isinstance(entries, list):
            return []
        in_cart = set(cart_ids)
        picked: Dict[int, Tuple[float, str]] = {}
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            pid = coerce_id(entry.get("id"))
            score = coerce_score(entry.get("score"))
            if pid is None or score is None or pid in in_cart or pid in picked:
                continue
            if score <= self._config.confidence_floor:
                continue
            picked[pid] = (score, str(entry.get("reason") or "").strip())
        return [(pid, score, reason) for pid, (score, reason) in picked.items()]

    async def analyze(self, cart_product_ids: Iterable[Any], user_id: Optional[str] = None) -> CartAnalysis:
        cart_ids = _unique_ids(cart_product_ids)
        if not cart_ids:
            return CartAnalysis()

        cart_products = await asyncio.to_thread(self._products.find_products, ProductFilter(ids=cart_ids))
        if not cart_products:
            logger.info(f"[cart] none of {len(cart_ids)} cart ids resolved")
            return CartAnalysis()

        prefs = await self._preferences.extract(user_id)

        try:
            raw = await self._gateway.complete(
                build_cart_messages(cart_products, prefs),
                max_tokens=600,
                temperature=0.5,
                timeout=self._config.completion_timeout_s,
            )
        except UpstreamError as e:
            return self._empty(user_id, cause=e.kind)

        result = parse_json(raw, dict)
        if isinstance(result, Malformed):
            return self._empty(user_id, cause=result.reason)

        picks = self._pick(result.data.get("recommendations"), cart_ids)
        found = await asyncio.to_thread(
            self._products.find_products,
            ProductFilter(ids=[pid for pid, _, _ in picks], exclude_ids=cart_ids),
        )
        resolved = {p.id: p for p in found}
        recommendations = [
            Recommendation.from_product(resolved[pid], score=score, reason=reason)
            for pid, score, reason in picks
            if pid in resolved
        ]

        insights = result.data.get("insights")
        if not isinstance(insights, list):
            insights = []
        insights = [i for i in insights if isinstance(i, str)]

        logger.info(
            f"[cart] user={slog.uhash(user_id)} cart={len(cart_products)} "
            f"suggested={len(picks)} kept={len(recommendations)} insights={len(insights)}"
        )
        return CartAnalysis(recommendations=recommendations, insights=insights)

# =============================================
# File: magicommerce/services/preferences.py
# Purpose: Derive preference keywords from a user's recent interactions via the completion service
# =============================================
from __future__ import annotations
import asyncio
from typing import Optional, Set

from loguru import logger

from ..db.repo import ProductFilter, ProductStore
from ..utils import metrics, slog
from ..utils.config import PersonalizationConfig
from ..utils.parsing import Malformed, parse_json
from ..utils.prompting import build_preference_messages
from ..utils.sanitize import clip, collapse_ws
from .behavior import BehaviorStore
from .gateway import CompletionGateway, UpstreamError


class PreferenceExtractor:
    """Best-effort enrichment: any failure yields an empty set, never an exception."""

    def __init__(
        self,
        behavior: BehaviorStore,
        products: ProductStore,
        gateway: CompletionGateway,
        config: PersonalizationConfig,
    ) -> None:
        self._behavior = behavior
        self._products = products
        self._gateway = gateway
        self._config = config

    async def _interaction_text(self, user_id: str) -> str:
        events = await self._behavior.recent_events(user_id, self._config.preference_history_limit)
        ids = {e.product_id for e in events if e.product_id is not None}
        if not ids:
            return ""
        found = await asyncio.to_thread(self._products.find_products, ProductFilter(ids=sorted(ids)))
        by_id = {p.id: p for p in found}
        parts = []
        for e in events:
            p = by_id.get(e.product_id)
            if p is not None:
                parts.append(f"{p.title} {p.description}")
        return clip(collapse_ws(" ".join(parts)), self._config.preference_text_max_chars)

    async def extract(self, user_id: Optional[str]) -> Set[str]:
        if not user_id:
            return set()

        try:
            text = await self._interaction_text(user_id)
        except Exception as e:
            logger.warning(f"[preferences] history lookup failed user={slog.uhash(user_id)}: {e}")
            return set()
        if not text:
            return set()

        try:
            raw = await self._gateway.complete(
                build_preference_messages(text),
                max_tokens=200,
                temperature=0.3,
                timeout=self._config.completion_timeout_s,
            )
        except UpstreamError as e:
            metrics.record_fallback("preferences")
            logger.info(f"[preferences] skipped, completion unavailable ({e.kind})")
            return set()

        result = parse_json(raw, list)
        if isinstance(result, Malformed):
            metrics.record_fallback("preferences")
            logger.info(f"[preferences] unparseable response: {result.reason}")
            return set()

        prefs = {str(p).strip() for p in result.data if isinstance(p, str) and p.strip()}
        logger.info(f"[preferences] user={slog.uhash(user_id)} learned={len(prefs)}")
        return prefs

# =============================================
# File: magicommerce/services/personalization.py
# Purpose: Facade wiring stores + completion gateway into the three operations the API exposes
# =============================================
from __future__ import annotations
from typing import Any, Dict, Iterable, List, Optional

from loguru import logger
from sqlalchemy.engine import Engine

from ..db.models import EventType, UserEvent
from ..db.repo import EventStore, ProductStore, SqlEventStore, SqlProductStore, init_db, make_engine
from ..utils.config import PersonalizationConfig, Settings
from .behavior import BehaviorStore
from .cart import CartAnalyzer
from .gateway import CompletionGateway
from .preferences import PreferenceExtractor
from .recommender import RecommendationRanker
from .schemas import CartAnalysis, RankingContext, Recommendation


class Personalization:
    def __init__(
        self,
        products: ProductStore,
        events: EventStore,
        gateway: CompletionGateway,
        config: Optional[PersonalizationConfig] = None,
        engine: Optional[Engine] = None,
    ) -> None:
        self.config = config or PersonalizationConfig()
        self.products = products
        self.gateway = gateway
        self.engine = engine
        self.behavior = BehaviorStore(events)
        self.preferences = PreferenceExtractor(self.behavior, products, gateway, self.config)
        self.ranker = RecommendationRanker(self.behavior, self.preferences, products, gateway, self.config)
        self.cart = CartAnalyzer(self.preferences, products, gateway, self.config)

    @classmethod
    def from_settings(cls, settings: Settings) -> "Personalization":
        engine = make_engine(settings.db_url)
        init_db(engine)
        return cls(
            products=SqlProductStore(engine),
            events=SqlEventStore(engine),
            gateway=CompletionGateway(settings.gateway),
            config=settings.personalization,
            engine=engine,
        )

    async def track_behavior(
        self,
        user_id: Optional[str],
        product_id: Optional[int],
        event_type: Any,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> bool:
        try:
            kind = EventType(event_type)
        except ValueError:
            logger.warning(f"[behavior] ignoring unknown event type {event_type!r}")
            return False
        event = UserEvent(
            user_id=user_id or None,
            product_id=product_id,
            event_type=kind.value,
            meta=dict(metadata or {}),
        )
        return await self.behavior.record(event)

    async def get_recommendations(
        self,
        user_id: Optional[str],
        current_product_id: Optional[int] = None,
        cart_product_ids: Optional[Iterable[int]] = None,
        limit: Optional[int] = None,
    ) -> List[Recommendation]:
        context = RankingContext(
            current_product_id=current_product_id,
            cart_product_ids=list(cart_product_ids or []),
            limit=self.config.default_limit if limit is None else limit,
        )
        return await self.ranker.rank(user_id, context)

    async def analyze_cart(self, cart_product_ids: Iterable[Any], user_id: Optional[str] = None) -> CartAnalysis:
        return await self.cart.analyze(cart_product_ids, user_id)

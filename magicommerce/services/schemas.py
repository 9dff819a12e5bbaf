# =============================================
# File: magicommerce/services/schemas.py
# Purpose: Per-request value objects returned by the personalization core (never persisted)
# =============================================
from __future__ import annotations
from typing import Any, List, Optional

from pydantic import BaseModel, Field


class RankingContext(BaseModel):
    current_product_id: Optional[int] = None
    cart_product_ids: List[int] = Field(default_factory=list)
    limit: int = 10

    def excluded_ids(self) -> List[int]:
        ids = set(self.cart_product_ids)
        if self.current_product_id is not None:
            ids.add(self.current_product_id)
        return sorted(ids)


class Recommendation(BaseModel):
    id: int
    title: str
    description: str = ""
    price_cents: int = 0
    image_url: Optional[str] = None
    score: float = Field(ge=0.0, le=1.0)
    reason: str = ""

    @classmethod
    def from_product(cls, product: Any, score: float, reason: str) -> "Recommendation":
        return cls(
            id=product.id,
            title=product.title,
            description=product.description or "",
            price_cents=product.price_cents,
            image_url=product.image_url,
            score=score,
            reason=reason,
        )


class CartAnalysis(BaseModel):
    recommendations: List[Recommendation] = Field(default_factory=list)
    insights: List[str] = Field(default_factory=list)

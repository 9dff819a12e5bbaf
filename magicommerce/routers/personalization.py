# =============================================
# File: magicommerce/routers/personalization.py
# Purpose: HTTP surface for behaviour tracking, recommendations and cart analysis
# =============================================
from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from loguru import logger
from pydantic import BaseModel, Field

from magicommerce.db.models import EventType
from magicommerce.services.personalization import Personalization
from magicommerce.services.schemas import CartAnalysis, Recommendation
from magicommerce.utils import slog
from magicommerce.utils.config import Settings
from magicommerce.utils.parsing import coerce_id

router = APIRouter(prefix="/personalization", tags=["personalization"])

_service: Optional[Personalization] = None


def get_personalization() -> Personalization:
    """Process-wide service built from env on first use; tests override this dependency."""
    global _service
    if _service is None:
        _service = Personalization.from_settings(Settings.from_env())
    return _service


# ---------- Schemas ----------
class TrackRequest(BaseModel):
    user_id: Optional[str] = Field(None, max_length=128)
    product_id: Optional[int] = None
    event_type: EventType
    metadata: Dict[str, Any] = Field(default_factory=dict)


class TrackResponse(BaseModel):
    success: bool = True
    recorded: bool


class RecommendationsResponse(BaseModel):
    success: bool = True
    recommendations: List[Recommendation]
    count: int


class CartAnalysisRequest(BaseModel):
    cart_product_ids: List[int] = Field(default_factory=list, max_length=200)
    user_id: Optional[str] = Field(None, max_length=128)


# ---------- Helpers ----------
def _parse_id_list(raw: Optional[str]) -> List[int]:
    """'1, 2,x,3' -> [1, 2, 3]; non-numeric entries are ignored."""
    out: List[int] = []
    for part in (raw or "").split(","):
        pid = coerce_id(part)
        if pid is not None:
            out.append(pid)
    return out


# ---------- Endpoints ----------
@router.post("/track", response_model=TrackResponse)
async def post_track(
    req: TrackRequest,
    request: Request,
    svc: Personalization = Depends(get_personalization),
) -> TrackResponse:
    """Record one interaction. Storage problems are logged, never surfaced."""
    request.state.log_context = {"user": slog.uhash(req.user_id), "event_type": req.event_type.value}
    recorded = await svc.track_behavior(req.user_id, req.product_id, req.event_type, req.metadata)
    return TrackResponse(recorded=recorded)


@router.get("/recommendations", response_model=RecommendationsResponse)
async def get_recommendations(
    request: Request,
    user_id: Optional[str] = None,
    current_product_id: Optional[int] = None,
    cart_product_ids: Optional[str] = Query(None, description="Comma-separated product ids"),
    limit: int = Query(10, ge=1, le=50),
    svc: Personalization = Depends(get_personalization),
) -> RecommendationsResponse:
    """
    Personalized recommendations for a user and optional product / cart context.
    Always answers when the AI backend is down; a failing product store is a 500.
    """
    request.state.log_context = {"user": slog.uhash(user_id), "limit": limit}
    try:
        recs = await svc.get_recommendations(
            user_id or None,
            current_product_id=current_product_id,
            cart_product_ids=_parse_id_list(cart_product_ids),
            limit=limit,
        )
    except Exception as e:
        logger.exception(f"[personalization] recommendations failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to get recommendations")
    request.state.log_context["count"] = len(recs)
    return RecommendationsResponse(recommendations=recs, count=len(recs))


@router.post("/cart-analysis", response_model=CartAnalysis)
async def post_cart_analysis(
    req: CartAnalysisRequest,
    request: Request,
    svc: Personalization = Depends(get_personalization),
) -> CartAnalysis:
    request.state.log_context = {"user": slog.uhash(req.user_id), "cart_size": len(req.cart_product_ids)}
    try:
        return await svc.analyze_cart(req.cart_product_ids, req.user_id or None)
    except Exception as e:
        logger.exception(f"[personalization] cart analysis failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to analyze cart")

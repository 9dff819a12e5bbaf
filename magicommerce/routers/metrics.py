# =============================================
# File: magicommerce/routers/metrics.py
# Purpose: Expose internal counters (requests, completions, fallbacks) as JSON
# =============================================
from __future__ import annotations
from fastapi import APIRouter
from magicommerce.utils.metrics import snapshot

router = APIRouter(tags=["metrics"])

@router.get("/metrics")
def get_metrics():
    return snapshot()

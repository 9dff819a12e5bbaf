# =============================================
# File: magicommerce/routers/health.py
# Purpose: Liveness of the database and the completion service
# =============================================
from __future__ import annotations
import asyncio
from typing import Any, Dict

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from magicommerce.db.repo import ping_db
from magicommerce.routers.personalization import get_personalization
from magicommerce.services.gateway import UpstreamError
from magicommerce.services.personalization import Personalization

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(deep: bool = False, svc: Personalization = Depends(get_personalization)):
    """
    db: a `SELECT 1` round trip.
    completion: configured? With ?deep=true also a 5-token ping.
    """
    db: Dict[str, Any] = {"ok": False, "error": None}
    completion: Dict[str, Any] = {"configured": svc.gateway.configured, "ok": None, "error": None}

    if svc.engine is None:
        db["error"] = "no database engine"
    else:
        try:
            await asyncio.to_thread(ping_db, svc.engine)
            db["ok"] = True
        except Exception as e:
            db["error"] = str(e) or "Unknown database error"

    if deep:
        try:
            await svc.gateway.ping()
            completion["ok"] = True
        except UpstreamError as e:
            completion["ok"] = False
            completion["error"] = f"{e.kind}: {e}"

    # the completion service is optional: recommendations degrade without it
    ok = db["ok"] and completion["ok"] is not False
    return JSONResponse(
        {"ok": ok, "db": db, "completion": completion},
        status_code=200 if ok else 503,
    )

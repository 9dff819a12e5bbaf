# =============================================
# File: magicommerce/utils/slog.py
# Purpose: Structured (JSON) event logging + request helpers for FastAPI
# =============================================
from __future__ import annotations
import hashlib
import json
import logging
import os
import time
import uuid
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Callable

_LOGGER_NAME = "magicommerce"
_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

_logger = logging.getLogger(_LOGGER_NAME)
if not _logger.handlers:
    _logger.setLevel(getattr(logging, _LEVEL, logging.INFO))
    _handler = logging.StreamHandler()
    # Records are pre-formatted JSON strings
    _handler.setFormatter(logging.Formatter("%(message)s"))
    _logger.addHandler(_handler)
    _logger.propagate = True  # allow pytest caplog to capture

def uhash(user_id: str | None) -> str:
    """Short stable hash of a user id, so logs never carry the raw identity."""
    if not user_id:
        return ""
    return hashlib.sha256(user_id.strip().encode("utf-8")).hexdigest()[:10]

def new_request_id() -> str:
    return uuid.uuid4().hex

@contextmanager
def timer() -> Iterator[Callable[[], int]]:
    t0 = time.perf_counter()
    yield lambda: int((time.perf_counter() - t0) * 1000)

def log_event(event: str, **fields: Any) -> None:
    rec = {"event": event}
    rec.update(fields)
    _logger.info(json.dumps(rec, ensure_ascii=False, default=str))

def finalize_request_log(
    request_id: str,
    method: str,
    path: str,
    status: int,
    latency_ms: int,
    client_ip: str | None,
    ctx: Dict[str, Any] | None = None,
) -> None:
    payload: Dict[str, Any] = {
        "request_id": request_id,
        "method": method,
        "path": path,
        "status": status,
        "latency_ms": latency_ms,
        "client_ip": client_ip or "",
    }
    if ctx:
        payload.update(ctx)
    log_event("request.completed", **payload)

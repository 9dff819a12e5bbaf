# =============================================
# File: magicommerce/utils/metrics.py
# Purpose: In-process counters & histograms for /metrics
# =============================================
from __future__ import annotations
from typing import Dict, Any, List
import threading
import time

_lock = threading.Lock()

_counters: Dict[str, int] = {
    "requests_total": 0,
    "events_recorded_total": 0,
    "events_dropped_total": 0,
}

# completion outcome -> count ("ok", "timeout", "connection", "http", "unconfigured")
_completion_outcomes: Dict[str, int] = {}
# component -> count of degraded responses ("ranker", "cart", "preferences")
_fallbacks: Dict[str, int] = {}

# Request latency histogram (ms): <=50,100,200,500,1000,2000,5000,10000, +inf
_latency_buckets: List[int] = [50, 100, 200, 500, 1000, 2000, 5000, 10000]
_latency_counts: List[int] = [0 for _ in _latency_buckets] + [0]

_MAX_SAMPLES: int = 1000
_endpoint_latency: Dict[str, List[float]] = {}   # "METHOD /path" -> [ms]
_endpoint_counts: Dict[str, int] = {}

def _avg(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0.0

def _p95(values: List[float]) -> float:
    if not values:
        return 0.0
    xs = sorted(values)
    idx = int(0.95 * (len(xs) - 1))
    return xs[idx]

def _observe_latency_ms(ms: int) -> None:
    idx = len(_latency_buckets)
    for i, thr in enumerate(_latency_buckets):
        if ms <= thr:
            idx = i
            break
    _latency_counts[idx] += 1

def record_request(method: str, path: str, latency_ms: float) -> None:
    key = f"{method.upper()} {path}"
    with _lock:
        _counters["requests_total"] += 1
        _observe_latency_ms(int(latency_ms))
        _endpoint_counts[key] = _endpoint_counts.get(key, 0) + 1
        buf = _endpoint_latency.setdefault(key, [])
        buf.append(float(latency_ms))
        if len(buf) > _MAX_SAMPLES:
            del buf[: len(buf) - _MAX_SAMPLES]

def record_completion(outcome: str) -> None:
    with _lock:
        _completion_outcomes[outcome] = _completion_outcomes.get(outcome, 0) + 1

def record_fallback(component: str) -> None:
    with _lock:
        _fallbacks[component] = _fallbacks.get(component, 0) + 1

def record_event(stored: bool) -> None:
    with _lock:
        _counters["events_recorded_total" if stored else "events_dropped_total"] += 1

def snapshot() -> Dict[str, Any]:
    with _lock:
        perf: Dict[str, Dict[str, float]] = {}
        for key, buf in _endpoint_latency.items():
            perf[key] = {
                "count": float(_endpoint_counts.get(key, 0)),
                "avg_latency_ms": _avg(buf),
                "p95_latency_ms": _p95(buf),
            }
        return {
            "counters": dict(_counters),
            "completions": dict(_completion_outcomes),
            "fallbacks": dict(_fallbacks),
            "latency_ms": {
                "buckets": list(_latency_buckets) + ["+Inf"],
                "counts": list(_latency_counts),
            },
            "performance": {
                "endpoints": perf,
                "generated_at": time.time(),
            },
        }

def reset() -> None:
    with _lock:
        for k in _counters:
            _counters[k] = 0
        _completion_outcomes.clear()
        _fallbacks.clear()
        _endpoint_latency.clear()
        _endpoint_counts.clear()
        for i in range(len(_latency_counts)):
            _latency_counts[i] = 0

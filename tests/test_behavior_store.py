# =============================================
# File: tests/test_behavior_store.py
# Purpose: Event log: recording never raises, recency queries are newest-first and capped
# =============================================
import sys, os
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

import pytest

from fakes import BrokenEventStore, event, make_service
from magicommerce.services.behavior import BehaviorStore
from magicommerce.utils.metrics import reset as metrics_reset, snapshot


@pytest.mark.asyncio
async def test_track_then_query_newest_first():
    svc = make_service()
    assert await svc.track_behavior("u1", 1, "view") is True
    assert await svc.track_behavior("u1", 2, "cart_add", {"qty": 2}) is True
    assert await svc.track_behavior("u2", 3, "purchase") is True

    events = await svc.behavior.recent_events("u1", 10)
    assert [(e.product_id, e.event_type) for e in events] == [(2, "cart_add"), (1, "view")]
    assert events[0].meta == {"qty": 2}


@pytest.mark.asyncio
async def test_recent_events_respects_limit_and_order():
    svc = make_service(events=[event("u1", 1, minutes_ago=m) for m in (5, 1, 3, 2, 4)])
    events = await svc.behavior.recent_events("u1", 3)
    assert len(events) == 3
    stamps = [e.created_at for e in events]
    assert stamps == sorted(stamps, reverse=True)


@pytest.mark.asyncio
async def test_anonymous_user_gets_nothing_without_touching_store():
    store = BehaviorStore(BrokenEventStore())
    assert await store.recent_events(None, 20) == []
    assert await store.recent_events("  ", 20) == []
    assert await store.recent_events("u1", 0) == []


@pytest.mark.asyncio
async def test_storage_failure_is_swallowed_and_counted():
    metrics_reset()
    svc = make_service()
    svc.behavior = BehaviorStore(BrokenEventStore())

    assert await svc.track_behavior("u1", 1, "view") is False
    assert snapshot()["counters"]["events_dropped_total"] == 1


@pytest.mark.asyncio
async def test_unknown_event_type_is_not_recorded():
    svc = make_service()
    assert await svc.track_behavior("u1", 1, "wishlist") is False
    assert await svc.behavior.recent_events("u1", 10) == []


@pytest.mark.asyncio
async def test_event_without_product_or_user_is_accepted():
    svc = make_service()
    assert await svc.track_behavior(None, None, "search", {"q": "tents"}) is True
    assert await svc.track_behavior("u1", None, "chat_question") is True
    events = await svc.behavior.recent_events("u1", 5)
    assert events[0].product_id is None

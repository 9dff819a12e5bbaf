# =============================================
# File: tests/test_preferences.py
# Purpose: Preference extraction is best-effort and silent on every failure
# =============================================
import sys, os
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

import pytest

from fakes import BrokenEventStore, BrokenProductStore, FakeGateway, event, make_service
from magicommerce.services.behavior import BehaviorStore
from magicommerce.services.gateway import UpstreamError


@pytest.mark.asyncio
async def test_no_user_means_no_lookups_at_all():
    gw = FakeGateway(preferences='["x"]')
    svc = make_service(gateway=gw)
    svc.preferences._behavior = BehaviorStore(BrokenEventStore())
    svc.preferences._products = BrokenProductStore()

    assert await svc.preferences.extract(None) == set()
    assert await svc.preferences.extract("") == set()
    assert gw.calls == []


@pytest.mark.asyncio
async def test_user_without_history_skips_gateway():
    gw = FakeGateway(preferences='["x"]')
    svc = make_service(gateway=gw)
    assert await svc.preferences.extract("nobody") == set()
    assert gw.calls == []


@pytest.mark.asyncio
async def test_events_without_products_skip_gateway():
    gw = FakeGateway(preferences='["x"]')
    svc = make_service(gateway=gw, events=[event("u1", None, "search"), event("u1", 999)])
    assert await svc.preferences.extract("u1") == set()
    assert gw.calls == []


@pytest.mark.asyncio
async def test_extracts_keywords_from_product_text():
    gw = FakeGateway(preferences='["trail running", " outdoor ", "", 5]')
    svc = make_service(gateway=gw, events=[event("u1", 2, minutes_ago=1), event("u1", 1, "purchase")])

    prefs = await svc.preferences.extract("u1")

    assert prefs == {"trail running", "outdoor"}
    call = gw.calls_for("preferences")[0]
    assert call["max_tokens"] == 200
    assert call["temperature"] == pytest.approx(0.3)
    user_msg = call["messages"][1]["content"]
    # newest interaction first
    assert user_msg.index("Product 1 Description 1") < user_msg.index("Product 2 Description 2")
    assert "JSON array of strings" in call["messages"][0]["content"]


@pytest.mark.asyncio
@pytest.mark.parametrize("reply", [
    "Here you go: running, hiking",
    '{"preferences": ["running"]}',
    UpstreamError("timeout", "slow"),
])
async def test_failures_are_silent(reply):
    svc = make_service(gateway=FakeGateway(preferences=reply), events=[event("u1", 1)])
    assert await svc.preferences.extract("u1") == set()


@pytest.mark.asyncio
async def test_product_lookup_failure_is_swallowed():
    gw = FakeGateway(preferences='["x"]')
    svc = make_service(gateway=gw, events=[event("u1", 1)])
    svc.preferences._products = BrokenProductStore()
    assert await svc.preferences.extract("u1") == set()
    assert gw.calls == []

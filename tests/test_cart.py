# =============================================
# File: tests/test_cart.py
# Purpose: Cart analysis: empty inputs, cart exclusion, unknown ids, no heuristic fallback
# =============================================
import sys, os
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

import json

import pytest

from fakes import BrokenProductStore, FakeGateway, make_products, make_service
from magicommerce.services.gateway import UpstreamError


@pytest.mark.asyncio
async def test_empty_cart_never_calls_gateway():
    gw = FakeGateway(cart='{"recommendations": [], "insights": ["x"]}')
    svc = make_service(gateway=gw)
    svc.cart._products = BrokenProductStore()  # the store must not be touched either

    result = await svc.analyze_cart([])

    assert result.model_dump() == {"recommendations": [], "insights": []}
    assert gw.calls == []


@pytest.mark.asyncio
async def test_unresolvable_cart_is_empty():
    gw = FakeGateway(cart='{"recommendations": [], "insights": ["x"]}')
    svc = make_service(gateway=gw)
    result = await svc.analyze_cart([404, 405])
    assert result.recommendations == [] and result.insights == []
    assert gw.calls == []


@pytest.mark.asyncio
async def test_recommendations_exclude_cart_and_unknown_ids():
    reply = json.dumps({
        "recommendations": [
            {"id": 1, "score": 0.9, "reason": "already in cart"},
            {"id": 3, "score": 0.8, "reason": "matching case"},
            {"id": 77, "score": 0.95, "reason": "does not exist"},
            {"id": 4, "score": 0.6, "reason": "upgrade"},
        ],
        "insights": ["Your cart is mostly accessories.", "Free shipping over $50."],
    })
    svc = make_service(products=make_products(5), gateway=FakeGateway(cart=reply))

    result = await svc.analyze_cart([1, 2], user_id=None)

    assert [(r.id, r.reason) for r in result.recommendations] == [(3, "matching case"), (4, "upgrade")]
    assert result.recommendations[0].title == "Product 3"
    assert result.insights == ["Your cart is mostly accessories.", "Free shipping over $50."]


@pytest.mark.asyncio
async def test_low_confidence_and_malformed_entries_are_dropped():
    reply = json.dumps({
        "recommendations": [{"id": 3, "score": 0.1, "reason": "meh"}, {"id": 4}, "x", {"id": 5, "score": 0.5}],
        "insights": ["ok", 42, None],
    })
    svc = make_service(products=make_products(5), gateway=FakeGateway(cart=reply))
    result = await svc.analyze_cart([1])
    assert [r.id for r in result.recommendations] == [5]
    assert result.insights == ["ok"]


@pytest.mark.asyncio
async def test_missing_insights_default_to_empty():
    reply = '{"recommendations": [{"id": 2, "score": 0.7, "reason": "pairs"}]}'
    svc = make_service(gateway=FakeGateway(cart=reply))
    result = await svc.analyze_cart([1])
    assert [r.id for r in result.recommendations] == [2]
    assert result.insights == []


@pytest.mark.asyncio
@pytest.mark.parametrize("reply", [
    "I think they would like socks.",
    '[{"id": 2, "score": 0.9}]',
    UpstreamError("http", "503"),
])
async def test_failures_yield_empty_analysis_not_a_guess(reply):
    gw = FakeGateway(cart=reply)
    svc = make_service(gateway=gw)
    result = await svc.analyze_cart([1])
    assert result.recommendations == [] and result.insights == []
    assert len(gw.calls_for("cart")) == 1


@pytest.mark.asyncio
async def test_prompt_lists_cart_products_only():
    gw = FakeGateway(cart='{"recommendations": [], "insights": []}')
    svc = make_service(products=make_products(4), gateway=gw)
    await svc.analyze_cart([2, "3", 2])

    call = gw.calls_for("cart")[0]
    prompt = call["messages"][1]["content"]
    cart_line = next(l for l in prompt.splitlines() if l.startswith("Cart Products:"))
    cart = json.loads(cart_line.split(": ", 1)[1])
    assert [p["id"] for p in cart] == [2, 3]
    assert "already in the cart" in prompt
    assert call["max_tokens"] == 600


@pytest.mark.asyncio
async def test_superscript_id_in_reply_is_skipped():
    reply = json.dumps({
        "recommendations": [{"id": "²", "score": 0.9, "reason": "odd"}, {"id": 3, "score": 0.7, "reason": "ok"}],
        "insights": [],
    })
    svc = make_service(gateway=FakeGateway(cart=reply))
    result = await svc.analyze_cart([1])
    assert [r.id for r in result.recommendations] == [3]

# =============================================
# File: magicommerce/utils/prompting.py
# Purpose: Build JSON-only chat messages for preference extraction, ranking and cart analysis
# =============================================
from __future__ import annotations
import json
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .sanitize import sanitize_product_text

PREFERENCES_SYS_PROMPT = (
    "You are an e-commerce personalization engine. Extract 5-10 key product categories "
    "or preferences from user behavior. Return only a JSON array of strings."
)

RANKING_SYS_PROMPT = (
    "You are an e-commerce recommendation engine. "
    "Return only valid JSON arrays with product rankings."
)

CART_SYS_PROMPT = (
    "You are an e-commerce cart analyst. Provide helpful recommendations and insights. "
    "Return only valid JSON."
)

RANKING_USER_TEMPLATE = (
    "Given the user's behavior and preferences, rank these products and select the top {limit} recommendations.\n"
    "Consider:\n"
    "- User's past interactions: {behavior}\n"
    "- User preferences: {preferences}\n"
    "- Current context: {context}\n\n"
    "Return a JSON array of objects with: {{\"id\": number, \"score\": number between 0 and 1, "
    "\"reason\": brief explanation}}. Only use ids from the candidates.\n\n"
    "Candidates: {candidates}"
)

CART_USER_TEMPLATE = (
    "Analyze this shopping cart and provide recommendations and insights.\n\n"
    "Cart Products: {cart}\n"
    "User Preferences: {preferences}\n\n"
    "Return a JSON object with:\n"
    "{{\n"
    "  \"recommendations\": [{{\"id\": number, \"score\": number between 0 and 1, \"reason\": string}}],\n"
    "  \"insights\": [\"insight 1\", \"insight 2\"]\n"
    "}}\n\n"
    "Recommendations should be complementary items, upgrades, or accessories. "
    "Do not recommend any product that is already in the cart.\n"
    "Insights should be helpful observations about the cart."
)


def _dumps(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"), default=str)

def product_payload(product: Any, with_image: bool = False) -> Dict[str, Any]:
    out = {
        "id": product.id,
        "title": sanitize_product_text(product.title, max_chars=120),
        "description": sanitize_product_text(product.description, max_chars=300),
        "price_cents": product.price_cents,
    }
    if with_image and product.image_url:
        out["image_url"] = product.image_url
    return out

def event_payload(event: Any) -> Dict[str, Any]:
    return {
        "product_id": event.product_id,
        "event_type": event.event_type,
        "metadata": event.meta or {},
    }

def build_preference_messages(interaction_text: str) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": PREFERENCES_SYS_PROMPT},
        {"role": "user", "content": f"Extract user preferences from these product interactions: {interaction_text}"},
    ]

def build_ranking_messages(
    events: Sequence[Any],
    preferences: Iterable[str],
    context: Dict[str, Any],
    candidates: Sequence[Any],
    limit: int,
) -> List[Dict[str, str]]:
    user = RANKING_USER_TEMPLATE.format(
        limit=limit,
        behavior=_dumps([event_payload(e) for e in events]),
        preferences=_dumps(sorted(preferences)),
        context=_dumps(context),
        candidates=_dumps([product_payload(p, with_image=True) for p in candidates]),
    )
    return [
        {"role": "system", "content": RANKING_SYS_PROMPT},
        {"role": "user", "content": user},
    ]

def build_cart_messages(cart_products: Sequence[Any], preferences: Optional[Iterable[str]]) -> List[Dict[str, str]]:
    user = CART_USER_TEMPLATE.format(
        cart=_dumps([product_payload(p) for p in cart_products]),
        preferences=_dumps(sorted(preferences or [])),
    )
    return [
        {"role": "system", "content": CART_SYS_PROMPT},
        {"role": "user", "content": user},
    ]

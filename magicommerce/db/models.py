# =============================================
# File: magicommerce/db/models.py
# Purpose: SQLModel tables for the catalog (read-only here) and the append-only user event log.
# =============================================
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class EventType(str, Enum):
    view = "view"
    search = "search"
    cart_add = "cart_add"
    purchase = "purchase"
    chat_question = "chat_question"


class Product(SQLModel, table=True):
    __tablename__ = "products"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    description: str = ""
    price_cents: int = 0
    image_url: Optional[str] = None


class UserEvent(SQLModel, table=True):
    __tablename__ = "user_events"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[str] = Field(default=None, index=True)
    # None means the event is not about a specific product (e.g. a search)
    product_id: Optional[int] = Field(default=None, foreign_key="products.id")
    event_type: str
    meta: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=_utc_now, index=True)

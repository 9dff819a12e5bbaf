# =============================================
# File: magicommerce/db/repo.py
# Purpose: Engine bootstrap (DB_URL, default SQLite) and the product / event store adapters
#          the personalization core talks to.
# =============================================
from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, List, Optional, Protocol, Sequence

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, col, create_engine, select

from .models import Product, UserEvent


def make_engine(db_url: str) -> Engine:
    if db_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        # an in-memory database only lives as long as its single connection
        if db_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(db_url, echo=False, **kwargs)
    return create_engine(db_url, echo=False, pool_pre_ping=True)

def init_db(engine: Engine) -> None:
    SQLModel.metadata.create_all(engine)

def ping_db(engine: Engine) -> None:
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))


@dataclass(frozen=True)
class ProductFilter:
    ids: Optional[Sequence[int]] = None
    exclude_ids: Sequence[int] = ()
    limit: Optional[int] = None


class ProductStore(Protocol):
    def find_products(self, flt: ProductFilter) -> List[Product]: ...
    def find_product_by_id(self, product_id: int) -> Optional[Product]: ...


class EventStore(Protocol):
    def create_event(self, event: UserEvent) -> None: ...
    def query_events(self, user_id: str, limit: int) -> List[UserEvent]: ...


class SqlProductStore:
    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def find_products(self, flt: ProductFilter) -> List[Product]:
        if flt.ids is not None and not flt.ids:
            return []
        stmt = select(Product)
        if flt.ids is not None:
            stmt = stmt.where(col(Product.id).in_(list(flt.ids)))
        if flt.exclude_ids:
            stmt = stmt.where(col(Product.id).not_in(list(flt.exclude_ids)))
        stmt = stmt.order_by(col(Product.id))
        if flt.limit is not None:
            stmt = stmt.limit(flt.limit)
        with Session(self._engine) as session:
            return list(session.exec(stmt).all())

    def find_product_by_id(self, product_id: int) -> Optional[Product]:
        with Session(self._engine) as session:
            return session.get(Product, product_id)

    def add_products(self, products: Iterable[Product]) -> int:
        n = 0
        with Session(self._engine, expire_on_commit=False) as session:
            for p in products:
                session.merge(p)
                n += 1
            session.commit()
        return n


class SqlEventStore:
    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def create_event(self, event: UserEvent) -> None:
        with Session(self._engine, expire_on_commit=False) as session:
            session.add(event)
            session.commit()

    def query_events(self, user_id: str, limit: int) -> List[UserEvent]:
        stmt = (
            select(UserEvent)
            .where(UserEvent.user_id == user_id)
            .order_by(col(UserEvent.created_at).desc(), col(UserEvent.id).desc())
            .limit(limit)
        )
        with Session(self._engine) as session:
            return list(session.exec(stmt).all())

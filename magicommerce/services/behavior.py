# =============================================
# File: magicommerce/services/behavior.py
# Purpose: Append / query user interaction events (view, search, cart_add, purchase, chat_question)
# =============================================
from __future__ import annotations
import asyncio
from typing import List, Optional

from loguru import logger

from ..db.models import UserEvent
from ..db.repo import EventStore
from ..utils import metrics, slog


class BehaviorStore:
    """
    Best-effort event log on top of an EventStore.

    - record(): never raises; returns whether the row was written so the caller
      may ignore it. The write finishes before the coroutine returns.
    - recent_events(): newest first; empty when there is no user.

    Store calls are synchronous and run on a worker thread.
    """

    def __init__(self, events: EventStore) -> None:
        self._events = events

    async def record(self, event: UserEvent) -> bool:
        try:
            await asyncio.to_thread(self._events.create_event, event)
        except Exception as e:
            metrics.record_event(stored=False)
            logger.error(
                f"[behavior] failed to track event={event.event_type} "
                f"user={slog.uhash(event.user_id)} product={event.product_id}: {e}"
            )
            return False
        metrics.record_event(stored=True)
        return True

    async def recent_events(self, user_id: Optional[str], limit: int) -> List[UserEvent]:
        if not user_id or not user_id.strip() or limit <= 0:
            return []
        return await asyncio.to_thread(self._events.query_events, user_id.strip(), limit)

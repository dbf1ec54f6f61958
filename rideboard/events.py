"""In-process domain event dispatcher."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActivityRecorded:
    """Published after an activity row has been flushed, before commit."""

    activity_id: UUID
    user_id: UUID
    vehicle_id: Optional[UUID]
    started_at: datetime
    duration_seconds: float
    distance_km: float
    max_speed_kmh: float


EventHandler = Callable[[object, AsyncSession], Awaitable[None]]


class EventDispatcher:
    """Dispatches domain events to handlers registered per event type.

    Handlers run sequentially inside the publisher's session, so their
    writes commit or roll back together with the publishing operation.
    """

    def __init__(self) -> None:
        self._handlers: dict[type, list[EventHandler]] = {}

    def subscribe(self, event_type: type, handler: EventHandler) -> None:
        handlers = self._handlers.setdefault(event_type, [])
        if handler not in handlers:
            handlers.append(handler)

    def unsubscribe(self, event_type: type, handler: EventHandler) -> None:
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def clear(self) -> None:
        self._handlers.clear()

    async def publish(self, event: object, db: AsyncSession) -> None:
        """Run every handler subscribed to ``type(event)``."""
        for handler in list(self._handlers.get(type(event), [])):
            try:
                await handler(event, db)
            except Exception:
                logger.exception(f"Event handler {getattr(handler, '__name__', handler)} failed for {event!r}")
                raise


event_dispatcher = EventDispatcher()

__all__ = ["ActivityRecorded", "EventDispatcher", "event_dispatcher"]

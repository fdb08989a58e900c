"""
Event Broker - Per-board fan-out of push events.

Subscribers (SSE streams and WebSocket connections) each get a bounded
queue. A subscriber that falls behind loses events rather than slowing
the publisher down.
"""

import asyncio
import json
from typing import Any, Optional

from boardcore.models import BoardEvent
from boardcore.utils.logging import get_logger

logger = get_logger(__name__)

SUBSCRIBER_QUEUE_SIZE = 10

# Event types
BOARD_CREATED = "board.created"
BOARD_UPDATED = "board.updated"
BOARD_DELETED = "board.deleted"
CURSOR_MOVED = "cursor.moved"


def encode_event(event: BoardEvent) -> str:
    """Serialize an event once for all subscribers."""
    return json.dumps(event.model_dump(by_alias=True, mode="json", exclude_none=True))


class Subscription:
    """One subscriber's queue of serialized events for a board."""

    def __init__(self, broker: "EventBroker", board_id: str):
        self.board_id = board_id
        self.queue: asyncio.Queue[str] = asyncio.Queue(maxsize=SUBSCRIBER_QUEUE_SIZE)
        self._broker = broker

    async def get(self) -> str:
        return await self.queue.get()

    def close(self):
        self._broker.unsubscribe(self)


class EventBroker:
    """
    Manages event subscriptions per board.

    publish() never blocks: a full subscriber queue drops the event with a
    warning.
    """

    def __init__(self):
        self._subscribers: dict[str, set[Subscription]] = {}

    def subscribe(self, board_id: str) -> Subscription:
        sub = Subscription(self, board_id)
        self._subscribers.setdefault(board_id, set()).add(sub)
        logger.debug("subscriber added", board_id=board_id, total=self.subscriber_count(board_id))
        return sub

    def unsubscribe(self, sub: Subscription):
        subs = self._subscribers.get(sub.board_id)
        if not subs:
            return
        subs.discard(sub)
        if not subs:
            del self._subscribers[sub.board_id]
        logger.debug("subscriber removed", board_id=sub.board_id)

    def publish(self, board_id: str, event_type: str, data: Any = None) -> int:
        """
        Broadcast an event to every subscriber of a board.

        Returns:
            Number of subscribers the event was queued for
        """
        subs = self._subscribers.get(board_id)
        if not subs:
            return 0
        message = encode_event(BoardEvent(type=event_type, board_id=board_id, data=data))
        delivered = 0
        for sub in list(subs):
            try:
                sub.queue.put_nowait(message)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning("dropping event: subscriber too slow", board_id=board_id, event_type=event_type)
        return delivered

    def subscriber_count(self, board_id: Optional[str] = None) -> int:
        if board_id is not None:
            return len(self._subscribers.get(board_id, ()))
        return sum(len(subs) for subs in self._subscribers.values())

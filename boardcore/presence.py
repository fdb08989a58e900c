"""
Presence - remote cursors and the outgoing cursor throttle.

Remote cursors are kept until they have been silent for PRESENCE_TTL
seconds; our own cursor is never stored. Outgoing cursor updates are sent
at most once per CURSOR_SEND_INTERVAL seconds.
"""

import time
from dataclasses import dataclass
from typing import Callable, Optional

from .models import Cursor, Point

PRESENCE_TTL = 5.0
CURSOR_SEND_INTERVAL = 0.12

Clock = Callable[[], float]


@dataclass
class PresenceEntry:
    cursor: Cursor
    last_seen: float


class PresenceMap:
    """Remote cursors keyed by participant id."""

    def __init__(self, own_id: str, ttl: float = PRESENCE_TTL, clock: Clock = time.monotonic):
        self.own_id = own_id
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, PresenceEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, cursor_id: str) -> bool:
        return cursor_id in self._entries

    def merge(self, cursor: Cursor) -> bool:
        """
        Record a remote cursor update.

        Returns:
            False for our own cursor or a cursor without an id
        """
        if not cursor.id or cursor.id == self.own_id:
            return False
        self._entries[cursor.id] = PresenceEntry(cursor=cursor, last_seen=self._clock())
        return True

    def prune(self) -> list[str]:
        """Drop cursors silent for longer than the TTL; returns their ids."""
        now = self._clock()
        stale = [cid for cid, entry in self._entries.items() if now - entry.last_seen > self.ttl]
        for cid in stale:
            del self._entries[cid]
        return stale

    def cursors(self) -> list[Cursor]:
        """Live remote cursors, pruning stale ones first."""
        self.prune()
        return [entry.cursor for entry in self._entries.values()]


class CursorThrottle:
    """Rate limit for outgoing cursor updates."""

    def __init__(self, interval: float = CURSOR_SEND_INTERVAL, clock: Clock = time.monotonic):
        self.interval = interval
        self._clock = clock
        self._last_sent: Optional[float] = None

    def ready(self) -> bool:
        """True (and the send is recorded) if enough time passed since the last send."""
        now = self._clock()
        if self._last_sent is not None and now - self._last_sent < self.interval:
            return False
        self._last_sent = now
        return True


def move_cursor(cursor: Cursor, position: Point) -> Cursor:
    """Copy of `cursor` at a new world position."""
    return cursor.model_copy(update={"position": position})

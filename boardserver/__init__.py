"""
Board Server - HTTP API, event streaming, storage and client for boards.
"""

from .store import BoardStore
from .events import EventBroker
from .client import BoardClient, BoardAPIError

__all__ = [
    "BoardStore",
    "EventBroker",
    "BoardClient",
    "BoardAPIError",
]

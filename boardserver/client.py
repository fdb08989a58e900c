"""
Board Client - HTTP collaborator for one editing session.

Fetches and saves whole boards, throttles outgoing cursor updates and
applies pushed events to a BoardDocument and a PresenceMap. Fetch and save
failures never raise: they are logged and surfaced as a short status
string, with no retry.
"""

import json
from typing import Any, Iterator, Optional

import httpx

from boardcore.config import settings
from boardcore.document import BoardDocument
from boardcore.errors import BoardError
from boardcore.models import Board, BoardEvent, Cursor, Point, generate_id
from boardcore.presence import CursorThrottle, PresenceMap, move_cursor
from boardcore.utils.logging import bind_board_context, get_logger

from .events import BOARD_CREATED, BOARD_DELETED, BOARD_UPDATED, CURSOR_MOVED

logger = get_logger(__name__)

STATUS_LIVE = "Live"
STATUS_SYNC_FAILED = "Sync failed"
STATUS_LOAD_FAILED = "Failed to load board"


class BoardAPIError(BoardError):
    """Raised by explicit API calls (list, create) when the server answers with an error."""

    def __init__(self, status_code: int, detail: str):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"API error {status_code}: {detail}")


def _error_detail(response: httpx.Response) -> str:
    try:
        return response.json().get("detail", response.text)
    except ValueError:
        return response.text or "Unknown error"


class BoardClient:
    """
    Talks to the board server on behalf of one document.

    Committed local changes are pushed automatically: the client registers
    itself as a commit callback of the document it is given.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        document: Optional[BoardDocument] = None,
        cursor: Optional[Cursor] = None,
        presence: Optional[PresenceMap] = None,
        throttle: Optional[CursorThrottle] = None,
        transport: Optional[httpx.BaseTransport] = None,
        timeout: float = 30.0,
    ):
        self.base_url = (base_url or settings.api_base).rstrip("/")
        self.document = document or BoardDocument()
        self.cursor = cursor or Cursor(
            id=generate_id(),
            label=settings.cursor_label,
            color=settings.cursor_color,
        )
        self.presence = presence or PresenceMap(self.cursor.id)
        self.throttle = throttle or CursorThrottle()
        self.board_id: Optional[str] = None
        self.status = "Ready"
        self._http = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

        self.document.on_commit(self._push_document)
        bind_board_context(client_id=self.cursor.id)

    def close(self):
        self._http.close()

    def __enter__(self) -> "BoardClient":
        return self

    def __exit__(self, *exc_info):
        self.close()

    # --- Explicit API calls ---

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        response = self._http.request(method, path, **kwargs)
        if response.status_code >= 400:
            raise BoardAPIError(response.status_code, _error_detail(response))
        return response

    def list_boards(self) -> list[Board]:
        return [Board.from_json_dict(raw) for raw in self._request("GET", "/boards").json()]

    def create_board(self, name: Optional[str] = None, board: Optional[Board] = None) -> Board:
        """Create a board on the server; the server assigns the id."""
        payload = board.to_json_dict() if board is not None else {}
        if name:
            payload["name"] = name
        return Board.from_json_dict(self._request("POST", "/boards", json=payload).json())

    def delete_board(self, board_id: str):
        self._request("DELETE", f"/boards/{board_id}")

    # --- Session operations ---

    def load_board(self, board_id: str) -> Optional[Board]:
        """
        Fetch a board and make it the document's board.

        Missing collections are normalised to empty lists. Returns None on
        failure, with `status` set.
        """
        try:
            response = self._http.get(f"/boards/{board_id}")
            response.raise_for_status()
            board = Board.from_json_dict(response.json())
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("board load failed", board_id=board_id, error=str(e))
            self.status = STATUS_LOAD_FAILED
            return None
        self.board_id = board.id
        bind_board_context(board_id=board.id)
        self.document.load(board)
        self.status = STATUS_LIVE
        return board

    def sync_board(self, board: Optional[Board] = None) -> bool:
        """
        Save a board with one PUT. Sets `status` to "Live" or "Sync failed".

        Args:
            board: Board to save; defaults to the document's board
        """
        board = board if board is not None else self.document.board
        try:
            response = self._http.put(f"/boards/{board.id}", json=board.to_json_dict())
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("board sync failed", board_id=board.id, error=str(e))
            self.status = STATUS_SYNC_FAILED
            return False
        self.status = STATUS_LIVE
        return True

    def _push_document(self):
        if self.board_id is not None:
            self.sync_board(self.document.board)

    def maybe_send_cursor(self, position: Point) -> bool:
        """
        Record our cursor position and POST it unless one was sent recently.

        Returns:
            True if a request was sent
        """
        self.cursor = move_cursor(self.cursor, position)
        if self.board_id is None or not self.throttle.ready():
            return False
        try:
            self._http.post(
                f"/boards/{self.board_id}/cursor",
                json=self.cursor.model_dump(by_alias=True, mode="json"),
            )
        except httpx.HTTPError as e:
            logger.debug("cursor update failed", error=str(e))
            return False
        return True

    # --- Pushed events ---

    def handle_event(self, payload: Any) -> Optional[str]:
        """
        Apply one pushed event.

        Board replacements go through the document (which defers them
        behind an in-flight local edit); remote cursors are merged into the
        presence map. Events for other boards and our own cursor are
        ignored.

        Args:
            payload: The decoded event, or its JSON text

        Returns:
            The event type if the event was applied, else None
        """
        if isinstance(payload, (str, bytes)):
            payload = json.loads(payload)
        event = BoardEvent.model_validate(payload)
        if event.board_id != self.board_id:
            return None

        if event.type in (BOARD_UPDATED, BOARD_CREATED):
            self.document.replace_from_remote(Board.from_json_dict(event.data or {}))
            return event.type
        if event.type == CURSOR_MOVED:
            cursor = Cursor.model_validate(event.data or {})
            return event.type if self.presence.merge(cursor) else None
        if event.type == BOARD_DELETED:
            self.status = "Board deleted"
            return event.type
        logger.debug("unknown event ignored", event_type=event.type)
        return None

    def iter_events(self, board_id: Optional[str] = None) -> Iterator[dict]:
        """Decoded events from the board's Server-Sent Events stream."""
        board_id = board_id or self.board_id
        with self._http.stream("GET", f"/boards/{board_id}/events", timeout=None) as response:
            response.raise_for_status()
            for line in response.iter_lines():
                if line.startswith("data: "):
                    yield json.loads(line[len("data: "):])

    def listen(self, board_id: Optional[str] = None):
        """Apply events from the stream until it closes."""
        for payload in self.iter_events(board_id):
            self.handle_event(payload)

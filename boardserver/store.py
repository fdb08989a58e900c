"""
Board Store - Thread-safe board storage with optional JSON file persistence.

Every read returns a deep copy and every write stores one, so callers can
never mutate stored state through a returned board.
"""

import json
import secrets
import threading
from pathlib import Path
from typing import Optional

from boardcore.models import Board, utcnow
from boardcore.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_BOARD_NAME = "Untitled Board"


def new_board_id() -> str:
    """Random 24-character hex board id."""
    return secrets.token_hex(12)


class BoardStore:
    """
    Boards keyed by id.

    When `data_file` is set the whole store is loaded from it on startup and
    written back after every change.
    """

    def __init__(self, data_file: Optional[str | Path] = None):
        self._lock = threading.RLock()
        self._boards: dict[str, Board] = {}
        self._data_file = Path(data_file) if data_file else None
        if self._data_file is not None and self._data_file.exists():
            self._load()

    @property
    def data_file(self) -> Optional[Path]:
        return self._data_file

    def __len__(self) -> int:
        with self._lock:
            return len(self._boards)

    # --- CRUD ---

    def list_boards(self) -> list[Board]:
        with self._lock:
            return [b.model_copy(deep=True) for b in self._boards.values()]

    def create_board(self, board: Board) -> Board:
        """Store a new board under a freshly generated id."""
        with self._lock:
            stored = board.model_copy(deep=True)
            stored.id = new_board_id()
            stored.name = stored.name or DEFAULT_BOARD_NAME
            stored.updated_at = utcnow()
            self._boards[stored.id] = stored
            self._save()
            logger.info("board created", board_id=stored.id, name=stored.name)
            return stored.model_copy(deep=True)

    def get_board(self, board_id: str) -> Optional[Board]:
        with self._lock:
            board = self._boards.get(board_id)
            return board.model_copy(deep=True) if board is not None else None

    def update_board(self, board: Board) -> Optional[Board]:
        """Replace an existing board. Returns None if the id is unknown."""
        with self._lock:
            if board.id not in self._boards:
                return None
            stored = board.model_copy(deep=True)
            stored.updated_at = utcnow()
            self._boards[stored.id] = stored
            self._save()
            logger.debug("board updated", board_id=stored.id)
            return stored.model_copy(deep=True)

    def delete_board(self, board_id: str) -> bool:
        with self._lock:
            if self._boards.pop(board_id, None) is None:
                return False
            self._save()
            logger.info("board deleted", board_id=board_id)
            return True

    # --- Persistence ---

    def _load(self):
        with open(self._data_file, "r") as f:
            data = json.load(f)
        for board_id, raw in (data.get("boards") or {}).items():
            board = Board.from_json_dict(raw)
            board.id = board_id
            self._boards[board_id] = board
        logger.info("boards loaded", path=str(self._data_file), count=len(self._boards))

    def _save(self):
        if self._data_file is None:
            return
        self._data_file.parent.mkdir(parents=True, exist_ok=True)
        payload = {"boards": {bid: b.to_json_dict() for bid, b in self._boards.items()}}
        tmp = self._data_file.with_suffix(self._data_file.suffix + ".tmp")
        with open(tmp, "w") as f:
            json.dump(payload, f, indent=2)
        tmp.replace(self._data_file)

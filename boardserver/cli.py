#!/usr/bin/env python3
"""Board tool CLI - run the board server and inspect boards from the shell."""

import argparse
import json
import sys

import httpx

from boardcore.config import settings
from boardcore.layout import apply_causal_layout
from boardcore.models import Board
from boardcore.status import known_groups
from boardcore.utils.logging import configure_logging
from boardcore.validation import validate_board, validation_summary

from .client import BoardAPIError, BoardClient


def _json_out(data):
    print(json.dumps(data))
    sys.exit(0)


def _error_out(message):
    _json_out({"status": "error", "error": message})


def _parse_list_arg(value):
    """Parse a list argument from JSON string or return None."""
    if value is None:
        return None
    try:
        parsed = json.loads(value)
    except (json.JSONDecodeError, TypeError):
        return None
    return parsed if isinstance(parsed, list) else None


def _client(args) -> BoardClient:
    return BoardClient(base_url=args.api_base)


def _summary(board: Board) -> dict:
    return {
        "id": board.id,
        "name": board.name,
        "updatedAt": board.updated_at.isoformat(),
        "shapes": len(board.shapes),
        "notes": len(board.notes),
        "texts": len(board.texts),
        "connectors": len(board.connectors),
        "causalNodes": len(board.causal_nodes),
        "causalLinks": len(board.causal_links),
    }


# ── Service ──────────────────────────────────────────────────────────────────

def cmd_serve(args):
    import uvicorn

    from .main import create_app
    from .store import BoardStore

    configure_logging(args.log_level)
    app = create_app(store=BoardStore(args.data_file or settings.data_file))
    uvicorn.run(app, host=args.host, port=args.port)


# ── Boards ───────────────────────────────────────────────────────────────────

def cmd_list(args):
    with _client(args) as client:
        boards = client.list_boards()
    _json_out({"status": "ok", "boards": [_summary(b) for b in boards]})


def cmd_create(args):
    with _client(args) as client:
        board = client.create_board(name=args.name)
    _json_out({"status": "ok", "board": board.to_json_dict()})


def cmd_show(args):
    with _client(args) as client:
        board = client.load_board(args.board_id)
        if board is None:
            _error_out(f"{client.status}: {args.board_id}")
    _json_out({"status": "ok", "board": board.to_json_dict()})


# ── Analysis ─────────────────────────────────────────────────────────────────

def cmd_layout(args):
    with _client(args) as client:
        board = client.load_board(args.board_id)
        if board is None:
            _error_out(f"{client.status}: {args.board_id}")
        document = client.document
        groups = _parse_list_arg(args.groups) or known_groups(document.board.causal_nodes)
        result = apply_causal_layout(document.board, groups=groups)
        # The client pushes the committed board to the server.
        document.commit()
        sync_status = client.status
    _json_out({
        "status": "ok" if sync_status == "Live" else "error",
        "sync": sync_status,
        "groups": result.groups,
        "cyclic": result.cyclic,
        "positions": {nid: p.model_dump() for nid, p in result.positions.items()},
    })


def cmd_validate(args):
    if args.file:
        with open(args.file, "r") as f:
            board = Board.from_json_dict(json.load(f))
    else:
        with _client(args) as client:
            board = client.load_board(args.board_id)
            if board is None:
                _error_out(f"{client.status}: {args.board_id}")
    issues = validate_board(board)
    _json_out({
        "status": "ok",
        "issues": [i.to_dict() for i in issues],
        "summary": validation_summary(issues),
    })


def main(argv=None):
    parser = argparse.ArgumentParser(prog="board-tool", description="Whiteboard and causal graph tool")
    parser.add_argument("--api-base", default=settings.api_base)
    sub = parser.add_subparsers(dest="command", required=True)

    # Service
    p = sub.add_parser("serve")
    p.add_argument("--host", default=settings.host)
    p.add_argument("--port", type=int, default=settings.port)
    p.add_argument("--data-file", default=None)
    p.add_argument("--log-level", default=settings.log_level)

    # Boards
    sub.add_parser("list")

    p = sub.add_parser("create")
    p.add_argument("--name", default=None)

    p = sub.add_parser("show")
    p.add_argument("--board-id", required=True)

    # Analysis
    p = sub.add_parser("layout")
    p.add_argument("--board-id", required=True)
    p.add_argument("--groups", default=None, help="JSON list of lane names, in order")

    p = sub.add_parser("validate")
    target = p.add_mutually_exclusive_group(required=True)
    target.add_argument("--board-id")
    target.add_argument("--file", help="Validate a board JSON file instead of a stored board")

    args = parser.parse_args(argv)

    cmd_map = {
        "serve": cmd_serve,
        "list": cmd_list,
        "create": cmd_create,
        "show": cmd_show,
        "layout": cmd_layout,
        "validate": cmd_validate,
    }
    try:
        cmd_map[args.command](args)
    except BoardAPIError as e:
        _error_out(f"API error: {e.detail}")
    except httpx.HTTPError as e:
        _error_out(f"Connection failed: {e}. Is the board server running?")


if __name__ == "__main__":
    main()

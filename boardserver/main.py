"""
Board Server - FastAPI Application

This is the main entry point for the board server.
It provides:
- REST API for board documents (list, create, fetch, replace, delete)
- Cursor presence updates fanned out to every client of a board
- Server-Sent Events and WebSocket streams of board events
- CORS configuration for local front-end development

Every replace runs causal status propagation before the board is stored,
so clients always receive derived statuses.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, HTTPException, Request, Response, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse

from boardcore.config import settings
from boardcore.models import Board, Cursor
from boardcore.status import propagate
from boardcore.utils.logging import board_context, get_logger

from .events import (
    BOARD_CREATED,
    BOARD_DELETED,
    BOARD_UPDATED,
    CURSOR_MOVED,
    EventBroker,
    Subscription,
)
from .store import DEFAULT_BOARD_NAME, BoardStore

logger = get_logger(__name__)

SSE_CONNECTED = ": connected\n\n"


async def event_stream(sub: Subscription) -> AsyncIterator[str]:
    """Server-Sent Events framing for one subscription; closes it when the client goes away."""
    try:
        yield SSE_CONNECTED
        while True:
            message = await sub.get()
            yield f"data: {message}\n\n"
    finally:
        sub.close()


def create_app(store: Optional[BoardStore] = None, broker: Optional[EventBroker] = None) -> FastAPI:
    """
    Build the application around a store and an event broker.

    Args:
        store: Board storage; defaults to one backed by settings.data_file
        broker: Event fan-out; defaults to a fresh broker
    """
    store = store if store is not None else BoardStore(settings.data_file)
    broker = broker if broker is not None else EventBroker()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("board server starting", boards=len(store), data_file=str(store.data_file))
        yield
        logger.info("board server stopped")

    app = FastAPI(
        title="Board API",
        description="Backend API for the collaborative whiteboard and causal graph editor",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.store = store
    app.state.broker = broker

    # CORS for local development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://localhost:3000", "http://127.0.0.1:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        response = await call_next(request)
        logger.debug(
            "request handled",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
        )
        return response

    def board_response(board: Board, status_code: int = 200) -> JSONResponse:
        return JSONResponse(board.to_json_dict(), status_code=status_code)

    # --- Health Check ---

    @app.get("/api/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "ok", "boards": len(store), "subscribers": broker.subscriber_count()}

    # --- Boards ---

    @app.get("/boards")
    async def list_boards():
        """List every board."""
        return [b.to_json_dict() for b in store.list_boards()]

    @app.post("/boards", status_code=201)
    async def create_board(board: Board):
        """Create a board; the server assigns its id."""
        if not board.name:
            board.name = DEFAULT_BOARD_NAME
        created = store.create_board(board)
        broker.publish(created.id, BOARD_CREATED, created.to_json_dict())
        return board_response(created, status_code=201)

    @app.get("/boards/{board_id}")
    async def get_board(board_id: str):
        """Get a board."""
        board = store.get_board(board_id)
        if board is None:
            raise HTTPException(status_code=404, detail="Board not found")
        return board_response(board)

    @app.put("/boards/{board_id}")
    async def update_board(board_id: str, board: Board):
        """Replace a board wholesale (last writer wins) and broadcast it."""
        with board_context(board_id=board_id):
            board.id = board_id
            propagate(board)
            updated = store.update_board(board)
            if updated is None:
                raise HTTPException(status_code=404, detail="Board not found")
            broker.publish(board_id, BOARD_UPDATED, updated.to_json_dict())
            return board_response(updated)

    @app.delete("/boards/{board_id}", status_code=204)
    async def delete_board(board_id: str):
        """Delete a board."""
        if not store.delete_board(board_id):
            raise HTTPException(status_code=404, detail="Board not found")
        broker.publish(board_id, BOARD_DELETED, {"id": board_id})
        return Response(status_code=204)

    # --- Presence ---

    @app.post("/boards/{board_id}/cursor", status_code=202)
    async def cursor_update(board_id: str, cursor: Cursor):
        """Broadcast a participant's cursor to the board's subscribers."""
        if store.get_board(board_id) is None:
            raise HTTPException(status_code=404, detail="Board not found")
        if not cursor.id:
            raise HTTPException(status_code=400, detail="cursor id required")
        broker.publish(board_id, CURSOR_MOVED, cursor.model_dump(by_alias=True, mode="json"))
        return Response(status_code=202)

    # --- Event streams ---

    @app.get("/boards/{board_id}/events")
    async def stream_board_events(board_id: str):
        """
        Server-Sent Events stream of a board's events.

        Starts with a `: connected` comment, then one `data: <json>` frame
        per event.
        """
        sub = broker.subscribe(board_id)
        return StreamingResponse(
            event_stream(sub),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
        )

    @app.websocket("/boards/{board_id}/ws")
    async def board_websocket(websocket: WebSocket, board_id: str):
        """
        WebSocket stream of a board's events.

        Each event is one JSON text frame; a "ping" frame gets a pong.
        """
        await websocket.accept()
        sub = broker.subscribe(board_id)

        async def forward():
            while True:
                await websocket.send_text(await sub.get())

        sender = asyncio.create_task(forward())
        try:
            while True:
                data = await websocket.receive_text()
                if data == "ping":
                    await websocket.send_text('{"type": "pong"}')
        except WebSocketDisconnect:
            logger.debug("websocket disconnected", board_id=board_id)
        finally:
            sender.cancel()
            try:
                await sender
            except asyncio.CancelledError:
                pass
            sub.close()

    return app


app = create_app()


# --- Run with uvicorn ---

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)

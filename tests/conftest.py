"""Shared pytest fixtures and configuration."""

from collections.abc import Iterator
from typing import Any, Callable, Optional

import httpx
import pytest
import structlog
from fastapi import FastAPI
from fastapi.testclient import TestClient

from boardcore.anchors import AnchorResolver
from boardcore.document import BoardDocument
from boardcore.hit_testing import HitTester
from boardcore.models import Board, EntityKind, Point
from boardcore.utils.logging import clear_board_context, configure_logging
from boardserver.events import EventBroker
from boardserver.main import create_app
from boardserver.store import BoardStore


@pytest.fixture(autouse=True)
def reset_logging_context() -> Iterator[None]:
    """Reset board/client log context and structlog configuration between tests."""
    clear_board_context()
    yield
    clear_board_context()
    structlog.reset_defaults()


@pytest.fixture
def configure_test_logging() -> Iterator[None]:
    """Configure logging for tests with console output."""
    configure_logging(level="DEBUG", log_format="console")
    yield


@pytest.fixture
def document() -> BoardDocument:
    return BoardDocument(Board(id="board-1", name="Test Board"))


@pytest.fixture
def resolver(document: BoardDocument) -> AnchorResolver:
    return AnchorResolver(document, snap_tolerance=32.0)


@pytest.fixture
def hit_tester(document: BoardDocument, resolver: AnchorResolver) -> HitTester:
    return HitTester(document, resolver)


class RecordingEditors:
    """Editor host that records every open() call instead of showing UI."""

    def __init__(self) -> None:
        self.opened: list[tuple[EntityKind, Point, Optional[Any], Callable[[Any], None]]] = []

    def open(self, kind, position, entity, on_commit) -> None:
        self.opened.append((kind, position, entity, on_commit))

    @property
    def last(self):
        return self.opened[-1]


@pytest.fixture
def editors() -> RecordingEditors:
    return RecordingEditors()


# --- Server fixtures ---

@pytest.fixture
def store() -> BoardStore:
    return BoardStore()


@pytest.fixture
def broker() -> EventBroker:
    return EventBroker()


@pytest.fixture
def app(store: BoardStore, broker: EventBroker) -> FastAPI:
    return create_app(store=store, broker=broker)


@pytest.fixture
def api(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture
def server_transport(api: TestClient) -> httpx.MockTransport:
    """An httpx transport that forwards every request to the in-process app."""

    def forward(request: httpx.Request) -> httpx.Response:
        response = api.request(
            request.method,
            request.url.path,
            content=request.content,
            headers={"content-type": request.headers.get("content-type", "application/json")},
        )
        return httpx.Response(
            response.status_code,
            content=response.content,
            headers={"content-type": response.headers.get("content-type", "application/json")},
        )

    return httpx.MockTransport(forward)

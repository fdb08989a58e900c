"""Structured logging configuration using structlog.

Board and client ids live in structlog's context variables, so every event
logged while serving a board carries them without threading a bound logger
through the call stack. Output is either console lines (development) or JSON
(production).
"""

import logging
import sys
from contextlib import AbstractContextManager
from typing import cast

import structlog
from structlog.types import Processor

from boardcore.config import settings

_CONTEXT_KEYS = ("board_id", "client_id")


def _context_values(board_id: str | None, client_id: str | None) -> dict[str, str]:
    values = {"board_id": board_id, "client_id": client_id}
    return {key: value for key, value in values.items() if value is not None}


def bind_board_context(board_id: str | None = None, client_id: str | None = None) -> None:
    """Attach board/client ids to every log event in the current context."""
    structlog.contextvars.bind_contextvars(**_context_values(board_id, client_id))


def clear_board_context() -> None:
    """Forget the board/client ids bound to the current context."""
    structlog.contextvars.unbind_contextvars(*_CONTEXT_KEYS)


def board_context(board_id: str | None = None, client_id: str | None = None) -> AbstractContextManager:
    """Bind board/client ids for the duration of a `with` block only."""
    return structlog.contextvars.bound_contextvars(**_context_values(board_id, client_id))


def configure_logging(level: str | None = None, log_format: str | None = None) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        level: Log level name. Defaults to settings.log_level.
        log_format: "console" or "json". Defaults to settings.log_format.
    """
    level = level or settings.log_level
    log_format = log_format or settings.log_format

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if log_format == "json":
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper()),
        force=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))

"""Structured logging for engine operations.

Every service operation runs inside an operation context that binds the
operation name and an operation ID, so all log lines emitted while a
transaction is open (including rollbacks) can be grouped together.
"""

import logging
import sys
import uuid
from contextlib import contextmanager
from typing import Any, Iterator

import structlog
from structlog.types import EventDict, Processor

from entitystore.core.config import Settings, get_settings

NOISY_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "asyncpg")


def new_operation_id() -> str:
    return f"op_{uuid.uuid4().hex[:12]}"


def add_logger_name(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Add the bound logger name, falling back to the package name."""
    event_dict.setdefault("logger", getattr(logger, "name", None) or "entitystore")
    return event_dict


def rename_event_to_message(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    if "event" in event_dict:
        event_dict["message"] = event_dict.pop("event")
    return event_dict


def _renderer(settings: Settings) -> Processor:
    if settings.log_format == "console" or settings.is_development:
        return structlog.dev.ConsoleRenderer(
            colors=sys.stdout.isatty(),
            exception_formatter=structlog.dev.plain_traceback,
        )
    return structlog.processors.JSONRenderer()


def configure_logging(settings: Settings | None = None) -> None:
    """Configure structlog and the standard library root logger.

    Console output is used in development or when ``log_format`` is
    ``console``; JSON lines otherwise.

    Args:
        settings: Settings to read the level and format from. Defaults to
            the cached application settings.
    """
    settings = settings or get_settings()
    level = logging.getLevelName(settings.log_level)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        rename_event_to_message,
        _renderer(settings),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=settings.is_production,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    # Driver and SQL echo stay quiet unless db_echo asks for them
    if not settings.db_echo:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger, named after the calling module when given."""
    return structlog.get_logger(name or "entitystore")


@contextmanager
def operation_context(operation: str, **context: Any) -> Iterator[str]:
    """Bind an operation name and ID to every log line in the block.

    An operation already bound by an enclosing block is kept, so nested
    scopes log under the outermost operation ID.

    Yields:
        The operation ID in effect.
    """
    bound = structlog.contextvars.get_contextvars()
    if "operation_id" in bound:
        yield bound["operation_id"]
        return

    operation_id = new_operation_id()
    with structlog.contextvars.bound_contextvars(
        operation=operation, operation_id=operation_id, **context
    ):
        yield operation_id

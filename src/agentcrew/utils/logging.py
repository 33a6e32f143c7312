"""Structured logging.

structlog renders every event as JSON (or coloured console lines in
development). Request handling sets a correlation id in a contextvar so all
events of one HTTP request share it, and ``LoggerAdapter`` carries the
thread or API context the dispatch loop and routers log with.
"""

import logging
import sys
from contextvars import ContextVar
from typing import Any
from uuid import uuid4

import structlog
from structlog.types import EventDict, Processor

APP_NAME = "agentcrew"
QUIET_LOGGERS = ("httpx", "httpcore", "anthropic", "uvicorn.access")

correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> str | None:
    return correlation_id_var.get()


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Set the correlation id for the current context, generating one if needed."""
    if correlation_id is None:
        correlation_id = str(uuid4())
    correlation_id_var.set(correlation_id)
    return correlation_id


def clear_correlation_id() -> None:
    correlation_id_var.set(None)


def add_correlation_id(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    correlation_id = get_correlation_id()
    if correlation_id:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def add_app_context(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    event_dict.setdefault("app", APP_NAME)
    return event_dict


def setup_logging(level: str = "INFO", json_format: bool = True) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: JSON lines when True, coloured console output otherwise.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        add_correlation_id,
        add_app_context,
    ]
    if json_format:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    logging.basicConfig(format="%(message)s", level=log_level, handlers=[handler], force=True)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger


class LoggerAdapter:
    """Logger that adds a fixed context to every event."""

    def __init__(self, name: str | None = None, **context: Any):
        self._name = name
        self._logger = get_logger(name)
        self._context = context

    @property
    def context(self) -> dict[str, Any]:
        return dict(self._context)

    def bind(self, **context: Any) -> "LoggerAdapter":
        """Return a new adapter with ``context`` merged over the current one."""
        return LoggerAdapter(self._name, **{**self._context, **context})

    def _log(self, level: str, event: str, **kwargs: Any) -> None:
        getattr(self._logger, level)(event, **{**self._context, **kwargs})

    def debug(self, event: str, **kwargs: Any) -> None:
        self._log("debug", event, **kwargs)

    def info(self, event: str, **kwargs: Any) -> None:
        self._log("info", event, **kwargs)

    def warning(self, event: str, **kwargs: Any) -> None:
        self._log("warning", event, **kwargs)

    def error(self, event: str, **kwargs: Any) -> None:
        self._log("error", event, **kwargs)


def get_thread_logger(thread_id: str, channel_id: str | None = None) -> LoggerAdapter:
    """Logger bound to a chat thread and, when known, its channel."""
    context: dict[str, Any] = {"thread_id": thread_id}
    if channel_id:
        context["channel_id"] = channel_id
    return LoggerAdapter("dispatch", **context)


def get_api_logger() -> LoggerAdapter:
    return LoggerAdapter("api")

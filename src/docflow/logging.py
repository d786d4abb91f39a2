"""structlog setup for Docflow.

Events are snake_case names with key/value fields, rendered as JSON lines or
as colored console output, optionally into a size-rotated file.

Several UI contexts may share one process and one local store, so every
event emitted while a context is active carries its ``context_id``.

Example usage:
    >>> from docflow.config import LoggingConfig
    >>> from docflow.logging import setup_logging, get_logger, set_context_id
    >>>
    >>> setup_logging(LoggingConfig(level="INFO", format="json"))
    >>> set_context_id("tab-1")
    >>> logger = get_logger(__name__)
    >>> logger.info("project_saved", project_id="42")
"""

from __future__ import annotations

import contextvars
import logging
import logging.handlers
import sys
from typing import Any, TextIO

import structlog

from docflow.config import LoggingConfig

_context_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "context_id", default=None
)


def add_context_id(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """structlog processor stamping events with the active context id.

    An explicit ``context_id`` passed with the event is left alone.
    """
    context_id = _context_id.get()
    if context_id is not None and "context_id" not in event_dict:
        event_dict["context_id"] = context_id
    return event_dict


def set_context_id(context_id: str | None) -> None:
    """Set the UI context id for the current async context."""
    _context_id.set(context_id)


def get_context_id() -> str | None:
    """Get the UI context id for the current async context."""
    return _context_id.get()



def _build_handler(config: LoggingConfig, stream: TextIO | None) -> logging.Handler:
    if config.file is None:
        return logging.StreamHandler(stream or sys.stdout)

    config.file.parent.mkdir(parents=True, exist_ok=True)
    return logging.handlers.RotatingFileHandler(
        config.file,
        maxBytes=config.rotation_size_mb * 1024 * 1024,
        backupCount=config.retention_count,
        encoding="utf-8",
    )


def setup_logging(config: LoggingConfig, stream: TextIO | None = None) -> None:
    """Route structlog through a single stdlib handler.

    Any handler already on the root logger is replaced, so calling this
    again (once per CLI invocation, say) does not duplicate output.

    Args:
        config: Logging section of DocflowConfig
        stream: Where console output goes when no file is configured;
                stdout if omitted
    """
    level = logging.getLevelName(config.level)

    handler = _build_handler(config, stream)
    handler.setLevel(level)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    renderer: Any = (
        structlog.processors.JSONRenderer()
        if config.format == "json"
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_context_id,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger named after the calling module."""
    return structlog.get_logger(name)

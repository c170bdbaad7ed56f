"""
Nudge Structured Logging

structlog renders through stdlib logging handlers. The daemon and the
one-shot commands (``nudge add`` etc.) run as separate processes against the
same task store, and may append to the same log file, so every entry carries
the process id and the command, and the file always gets JSON lines whatever
the terminal format. Logs go to stderr; stdout is reserved for the listing.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Any, Literal

import structlog
from structlog.stdlib import ProcessorFormatter
from structlog.typing import EventDict, WrappedLogger

# Handlers installed by the last setup_logging call
_handlers: list[logging.Handler] = []


def add_process_context(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Tag every entry with the app name and the writing process."""
    event_dict.setdefault("app", "nudge")
    event_dict.setdefault("pid", os.getpid())
    return event_dict


def _pre_chain() -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        add_process_context,
    ]


def _formatter(*renderers: Any) -> ProcessorFormatter:
    return ProcessorFormatter(
        processors=[ProcessorFormatter.remove_processors_meta, *renderers],
        foreign_pre_chain=_pre_chain(),
    )


def _json_formatter() -> ProcessorFormatter:
    return _formatter(structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer())


def setup_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO",
    format: Literal["json", "console"] = "json",
    log_file: Path | None = None,
) -> None:
    """
    Configure structured logging for Nudge.

    Args:
        level: Minimum log level to output
        format: stderr format - 'json' for the daemon, 'console' for development
        log_file: Optional file to append JSON lines to

    Safe to call more than once; earlier handlers are replaced.
    """
    log_level = getattr(logging, level.upper())

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_pre_chain(),
            ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    stderr_handler = logging.StreamHandler(sys.stderr)
    if format == "json":
        stderr_handler.setFormatter(_json_formatter())
    else:
        stderr_handler.setFormatter(
            _formatter(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
        )
    handlers: list[logging.Handler] = [stderr_handler]

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(_json_formatter())
        handlers.append(file_handler)

    root = logging.getLogger()
    for handler in _handlers:
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    _handlers[:] = handlers
    root.setLevel(log_level)

    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def bind_command(command: str, store: Path | str) -> None:
    """Attach the running command and its task store to every later entry."""
    structlog.contextvars.bind_contextvars(command=command, store=str(store))


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)

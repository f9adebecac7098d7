"""Structured logging for sydneyqt.

This module provides a configured structlog logger with JSON output
or pretty console output, optionally written to a monthly log file.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, TextIO

import structlog

__all__ = [
    "configure_logging",
    "get_logger",
    "monthly_log_path",
]

# Third-party loggers that are only interesting when they warn
_QUIET_LOGGERS = ("httpx", "httpcore", "openai", "PIL", "markitdown")

_log_stream: TextIO | None = None


def monthly_log_path(log_dir: Path, now: datetime | None = None) -> Path:
    """Get the log file for the current month (``log_YYYY-MM.log``)."""
    now = now or datetime.now()
    return log_dir / f"log_{now:%Y-%m}.log"


def _switch_stream(log_file: Path | None) -> TextIO:
    """Open the new output stream and close the previous log file."""
    global _log_stream

    if log_file is None:
        stream: TextIO = sys.stdout
    else:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        stream = log_file.open("a", encoding="utf-8")

    if _log_stream is not None and _log_stream is not sys.stdout and _log_stream is not stream:
        _log_stream.close()
    _log_stream = stream
    return stream


def _build_processors(json_output: bool, colors: bool, add_timestamp: bool) -> list[Any]:
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    if add_timestamp:
        processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=colors))
    return processors


def configure_logging(
    debug: bool = False,
    json_output: bool = False,
    log_file: Path | None = None,
    add_timestamp: bool = True,
) -> None:
    """Configure structlog for the application.

    Can be called again at runtime, e.g. when the debug flag changes.

    Args:
        debug: If True, log at DEBUG level; otherwise INFO
        json_output: If True, output JSON; if False, pretty console output
        log_file: Append to this file instead of writing to stdout
        add_timestamp: If True, add ISO timestamp to log entries
    """
    level = logging.DEBUG if debug else logging.INFO

    structlog.configure(
        processors=_build_processors(json_output, log_file is None, add_timestamp),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Loggers must pick up a changed level after reconfiguration
        cache_logger_on_first_use=False,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=_switch_stream(log_file),
        level=level,
        force=True,
    )
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a configured structlog logger.

    Args:
        name: Logger name (usually __name__ of the calling module)
    """
    return structlog.get_logger(name)


# Default configuration until the app applies the persisted debug flag
_configured = False


def _ensure_configured() -> None:
    global _configured
    if not _configured:
        configure_logging()
        _configured = True


_ensure_configured()

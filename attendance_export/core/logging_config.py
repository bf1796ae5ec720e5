# attendance_export/core/logging_config.py
"""
Structured logging setup.

Uses structlog on top of the stdlib logging module so that third-party loggers
(httpx, uvicorn) and our own structured events end up in the same sinks.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import structlog

LOG_FILE_NAME = "attendance_export.log"


def configure_logging(
    level: str = "INFO",
    log_dir: str | None = None,
    json_logs: bool = False,
) -> None:
    """
    Configure structlog and the stdlib root logger.

    Parameters
    ----------
    level:
        Minimum log level name (DEBUG, INFO, WARNING, ...).
    log_dir:
        When set, events are also appended to `attendance_export.log` there.
    json_logs:
        Render JSON lines instead of the human-friendly console format.
    """
    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_dir:
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path / LOG_FILE_NAME, encoding="utf-8"))

    logging.basicConfig(
        format="%(message)s",
        handlers=handlers,
        level=getattr(logging, level.upper(), logging.INFO),
        force=True,
    )

    # Suppress verbose HTTP client logging
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)

"""Loguru logging configuration for the support chat backend.

``setup_logging()`` is called by ``create_app`` and by the demo script.  It
installs one loguru sink on stderr (coloured text for development, JSON
lines for log shippers) and sends every stdlib ``logging`` record, from
uvicorn, the openai SDK or httpx, through that same sink.  Each record
carries the deployment ``environment`` in its ``extra`` fields.
"""

from __future__ import annotations

import logging
import sys

from loguru import logger

SERVICE_NAME = "support-chat"

_INTERCEPTED_LOGGERS = ("uvicorn", "uvicorn.access", "uvicorn.error", "fastapi", "openai", "httpx")

_TEXT_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<magenta>{extra[environment]}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


class InterceptHandler(logging.Handler):
    """Redirect stdlib logging records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip logging's own frames so loguru reports the real caller
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back  # type: ignore[assignment]
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).bind(stdlib_logger=record.name).log(
            level, record.getMessage()
        )


def setup_logging(*, level: str = "INFO", json: bool = False, environment: str = "development") -> None:
    """Make loguru the single logging backend.

    Safe to call more than once; each call replaces the previous sinks.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ...).
        json: Emit one serialized JSON object per record instead of text.
        environment: Deployment name attached to every record.
    """
    logger.remove()
    logger.configure(extra={"service": SERVICE_NAME, "environment": environment})

    if json:
        logger.add(sys.stderr, level=level, serialize=True)
    else:
        logger.add(sys.stderr, level=level, format=_TEXT_FORMAT, colorize=True)

    intercept = InterceptHandler()
    for name in _INTERCEPTED_LOGGERS:
        stdlib_logger = logging.getLogger(name)
        stdlib_logger.handlers = [intercept]
        stdlib_logger.propagate = False

    logging.root.handlers = [intercept]
    logging.root.setLevel(logging.DEBUG)

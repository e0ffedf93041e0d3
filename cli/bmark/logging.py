"""Structured logging for the BMark API server and CLI."""

import sys
import logging
from typing import Optional

import structlog

# Third-party loggers that log every request at INFO
_NOISY_LOGGERS = ("httpx", "httpcore")


def configure_logging(debug: bool = False, json_logs: Optional[bool] = None):
    """
    Configure structlog on top of the standard library logger.

    Output is rendered for humans when stderr is a terminal and as one JSON
    object per line otherwise, unless ``json_logs`` forces a choice.

    Args:
        debug: Enable debug-level logging
        json_logs: Force JSON (True) or console (False) rendering
    """
    log_level = logging.DEBUG if debug else logging.INFO

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=log_level,
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if debug else logging.WARNING)

    if json_logs is None:
        json_logs = not sys.stderr.isatty()

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.add_logger_name,
    ]
    if json_logs:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def bind_request_context(**values) -> None:
    """Attach key/value pairs (e.g. prompt_id) to every log line of the current task."""
    structlog.contextvars.bind_contextvars(**values)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger with the given name.

    Args:
        name: Logger name (e.g., "bmark.llm.openrouter")

    Returns:
        Configured structlog BoundLogger
    """
    return structlog.get_logger(name)

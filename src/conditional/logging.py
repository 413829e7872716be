"""Structured logging configuration for conditional.

The expression engine only ever asks for a logger; configuring output is the
host's job (or the CLI's). This module provides structlog-based logging with:
- JSON output when CONDITIONAL_LOG_FORMAT=json
- Pretty console output otherwise
- Context binding for pipeline runs (pipeline, stage, run_id)

Usage:
    from conditional.logging import configure_logging, get_logger

    configure_logging()

    log = get_logger(__name__).bind(pipeline="nightly-load")
    log.info("condition_evaluated", result=True)
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog
from structlog.types import Processor

__all__ = [
    "get_logger",
    "configure_logging",
    "bind_context",
    "clear_context",
]

LOG_FORMAT_ENV_VAR = "CONDITIONAL_LOG_FORMAT"

LOG_LEVEL_ENV_VAR = "CONDITIONAL_LOG_LEVEL"

DEFAULT_LOG_LEVEL = "WARNING"


def _level_from_env() -> int:
    level_name = os.environ.get(LOG_LEVEL_ENV_VAR, DEFAULT_LOG_LEVEL).upper()
    return getattr(logging, level_name, logging.WARNING)


def _json_requested() -> bool:
    return os.environ.get(LOG_FORMAT_ENV_VAR, "").lower() == "json"


def _shared_processors() -> list[Processor]:
    """Processors applied to both structlog and foreign stdlib records."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(use_json: bool) -> Processor:
    if use_json:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(
    *,
    force_json: bool = False,
    level: int | None = None,
) -> None:
    """Configure structlog and the stdlib root logger.

    Safe to call repeatedly; each call replaces the previous configuration.

    Args:
        force_json: Force JSON output regardless of environment variable.
        level: Override log level. If None, reads CONDITIONAL_LOG_LEVEL.
    """
    use_json = force_json or _json_requested()
    log_level = level if level is not None else _level_from_env()

    exception_processor: Processor = (
        structlog.processors.dict_tracebacks
        if use_json
        else structlog.processors.format_exc_info
    )
    structlog.configure(
        processors=[
            *_shared_processors(),
            exception_processor,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(use_json),
            ],
            foreign_pre_chain=_shared_processors(),
        )
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger instance.

    Args:
        name: Logger name. If None, uses the caller's module name.

    Returns:
        A bound structlog logger.
    """
    log: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return log


def bind_context(**context: Any) -> None:
    """Bind context variables that will be included in all log messages.

    Example:
        bind_context(pipeline="nightly-load", run_id="abc-456")
    """
    structlog.contextvars.bind_contextvars(**context)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()

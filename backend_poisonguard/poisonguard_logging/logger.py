"""
Structured logging for the engine, session, API server and CLI.

Every record carries event_type, level, an ISO-8601 UTC timestamp and the
emitting module (logger). Context goes in keyword arguments:

    logger = get_logger(__name__)
    logger.info("analysis_completed", transaction_count=12, result_count=3)

Output is written to stderr so the CLI can print results as plain JSON on
stdout. LOG_FORMAT=json (default) renders JSON lines; any other value uses
the structlog console renderer. LOG_LEVEL filters below the given level.

Imports nothing from backend_poisonguard so every module can log at import time.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog


def _event_to_event_type(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """structlog puts the message under "event"; aggregation keys on event_type."""
    event = event_dict.pop("event", None)
    if event is not None:
        event_dict.setdefault("event_type", event)
    return event_dict


def configure_structlog(level: str | None = None, fmt: str | None = None) -> None:
    """
    (Re)configure structlog.

    Args:
        level: Level name, defaults to LOG_LEVEL or INFO.
        fmt: "json" or "console", defaults to LOG_FORMAT or json.
    """
    level_name = (level or os.getenv("LOG_LEVEL") or "INFO").strip().upper()
    render_format = (fmt or os.getenv("LOG_FORMAT") or "json").strip().lower()

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _event_to_event_type,
    ]
    if render_format == "json":
        processors.append(structlog.processors.JSONRenderer(sort_keys=True))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty(), event_key="event_type"))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level_name, logging.INFO)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """Structured logger bound to the emitting module name."""
    return structlog.get_logger(name).bind(logger=name)


def bind_session(session_id: str) -> structlog.BoundLogger:
    """Logger for one AnalysisSession; session_id is attached to every record."""
    return get_logger("backend_poisonguard.session").bind(session_id=session_id)

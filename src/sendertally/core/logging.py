"""Structured logging configuration for sendertally.

Format "auto" picks by destination: JSON lines when stderr is piped (cron,
CI, redirected runs), colored console output on a terminal. "json" and
"console" force one or the other.

Per-message events carry ``message_id`` right after ``event`` so failed
fetches can be grepped out of a long run.
"""

import logging
import sys
from typing import Literal, TextIO

import structlog

LogFormat = Literal["auto", "json", "console"]

_PRIORITY_KEYS = ("timestamp", "level", "component", "event", "message_id")


def reorder_keys(
    logger: object, method_name: str, event_dict: dict[str, object]
) -> dict[str, object]:
    """Reorder event_dict so priority fields come first for scannable JSON."""
    ordered: dict[str, object] = {}
    for key in _PRIORITY_KEYS:
        if key in event_dict:
            ordered[key] = event_dict[key]
    for key, value in event_dict.items():
        if key not in ordered:
            ordered[key] = value
    return ordered


def configure_logging(
    log_level: str = "info",
    log_format: LogFormat = "auto",
    stream: TextIO | None = None,
) -> None:
    """Configure structlog for JSON or console output.

    Args:
        log_level: Logging level name (debug, info, warning, error, critical).
        log_format: "auto", "json" or "console".
        stream: Destination, stderr by default. stdout stays free for the
                run summary.
    """
    if stream is None:
        stream = sys.stderr
    level = getattr(logging, log_level.upper(), logging.INFO)
    use_json = log_format == "json" or (log_format == "auto" and not stream.isatty())

    shared_processors: list[structlog.types.Processor] = [
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
    ]

    if use_json:
        shared_processors.append(structlog.processors.dict_tracebacks)
        shared_processors.append(reorder_keys)
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=stream.isatty())

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=False,
    )


def get_logger(**initial_context: object) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger, optionally bound to ``component=...`` etc."""
    return structlog.get_logger(**initial_context)

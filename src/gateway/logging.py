"""Structured logging configuration using structlog."""

import logging
import sys
from typing import Any

import structlog

SERVICE_NAME = "watch-gateway"

# uvicorn reports WebSocket protocol errors through "uvicorn.error"; the
# websockets library logs handshake failures under its own name.
STDLIB_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "websockets")


def add_service(
    _logger: Any, _method: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Tag every event with the gateway's service name."""
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def configure_logging(debug: bool = False) -> None:
    """Configure structlog for JSON output on stdout.

    Gateway events and records from the server's stdlib loggers are
    rendered as the same JSON lines, so a connection can be followed
    from handshake to close in one stream.

    Args:
        debug: Enable debug-level logging when True.
    """
    level = logging.DEBUG if debug else logging.INFO
    timestamper = structlog.processors.TimeStamper(fmt="iso")

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_service,
            structlog.processors.add_log_level,
            timestamper,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=[
                add_service,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                timestamper,
            ],
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ],
        )
    )
    logging.basicConfig(level=level, handlers=[handler], force=True)

    for name in STDLIB_LOGGERS:
        stdlib_logger = logging.getLogger(name)
        stdlib_logger.handlers = []
        stdlib_logger.propagate = True
    # Handshake chatter is only useful when debugging.
    logging.getLogger("websockets").setLevel(level if debug else logging.WARNING)

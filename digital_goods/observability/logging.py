"""
Structured Logging with Structlog.

Every webhook turn logs with its conversation id and intent bound, so a
purchase flow can be followed across the three turns that make it up.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from digital_goods.config import settings

# Libraries that log every outbound request at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "google.auth")


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Tag entries with the service name and version."""
    event_dict["service"] = settings.service_name
    event_dict["version"] = settings.api_version
    return event_dict


def drop_empty_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Remove bound keys whose value is None (e.g. a turn without a conversation id)."""
    return {key: value for key, value in event_dict.items() if value is not None}


def _renderer() -> Processor:
    if settings.log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def setup_logging() -> None:
    """
    Configure structlog on top of the standard library.

    A JSON entry looks like:
    {
        "event": "skus_batch_get_completed",
        "level": "info",
        "timestamp": "2025-01-08T12:00:00.123456Z",
        "logger": "digital_goods.services.commerce_client",
        "service": "digital-goods-fulfillment",
        "version": "0.1.0",
        "conversation_id": "1234567890",
        "intent": "Gather information",
        "sku_count": 2
    }
    """
    level = getattr(logging, settings.log_level.upper())
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        drop_empty_context,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_app_context,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
        _renderer(),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Usage:
        logger = get_logger(__name__)
        logger.info("entitlement_consumed", sku_id="coins")
    """
    return structlog.get_logger(name)  # type: ignore[no-any-return]


@contextmanager
def log_context(**context: Any) -> Iterator[None]:
    """
    Bind keys to every log entry emitted inside the block.

    Usage:
        with log_context(conversation_id="1234", intent="Gather information"):
            logger.info("intent_received")
    """
    with structlog.contextvars.bound_contextvars(**context):
        yield

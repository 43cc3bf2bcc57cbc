"""
Structured logging for the portal metrics service.

Events are logged by name with keyword context. Raw driver values never
reach the output: :func:`redact_raw_values` swaps them for their type name
before rendering, so a malformed aggregate can be diagnosed without its
content being written to the logs.
"""

import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import EventDict, Processor

from portal_metrics.config import Settings, get_settings

# Context keys that may carry a raw value handed back by a database driver
RAW_VALUE_KEYS = frozenset({"value", "raw", "raw_value", "row"})


def add_severity(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict["severity"] = method_name.upper()
    return event_dict


def redact_raw_values(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Replace raw values with their type name.

    ``value=Decimal("1.5")`` is rendered as ``value_type="Decimal"``.
    ``error_type`` and every other key pass through untouched.
    """
    for key in RAW_VALUE_KEYS.intersection(event_dict):
        event_dict[f"{key}_type"] = type(event_dict.pop(key)).__name__
    return event_dict


def configure_logging(settings: Optional[Settings] = None) -> None:
    """
    Configure stdlib logging and structlog.

    JSON lines outside dev mode; the console renderer in dev mode or when
    ``LOG_FORMAT=console``.
    """
    settings = settings or get_settings()

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
    )

    if settings.log_format == "json" and not settings.dev_mode:
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=not settings.testing)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            redact_raw_values,
            add_severity,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def bind_request_context(request_id: str, method: str, path: str) -> None:
    """Reset the per-request context and bind the request identity to it."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id, method=method, path=path)


def get_logger(name: str = __name__) -> structlog.BoundLogger:
    return structlog.get_logger(name)

"""Structured logging configuration using structlog.

Both structlog loggers and plain ``logging.getLogger(__name__)`` loggers end
up in the same stdout handler, rendered by the same processor chain.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from .settings import settings
from .utils import request_id_ctx
from .validators import phone_digits

SERVICE_NAME = "obsidian-club"
SERVICE_VERSION = "0.1.0"

# Event keys that carry guest contact details.
CONTACT_KEYS = frozenset({"phone", "email"})


def add_request_id(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Attach the current request ID (if any) to the log event."""
    request_id = request_id_ctx.get("")
    if request_id:
        event_dict["request_id"] = request_id
    return event_dict


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict["service"] = SERVICE_NAME
    event_dict["environment"] = settings.SENTRY_ENVIRONMENT
    event_dict["version"] = SERVICE_VERSION
    return event_dict


def mask_contact_details(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Keep only the last four phone digits and the email domain."""
    for key in CONTACT_KEYS & event_dict.keys():
        value = event_dict[key]
        if not isinstance(value, str) or not value:
            continue
        if key == "phone":
            digits = phone_digits(value)
            event_dict[key] = f"***{digits[-4:]}" if digits else "***"
        else:
            _, _, domain = value.partition("@")
            event_dict[key] = f"***@{domain}" if domain else "***"
    return event_dict


def drop_color_message_key(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Remove the 'color_message' key from the event dict.

    Uvicorn adds it for console output; it duplicates 'event' in JSON output.
    """
    event_dict.pop("color_message", None)
    return event_dict


def _renderers(json_logs: bool) -> list[Processor]:
    if json_logs:
        return [
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            drop_color_message_key,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ]
    return [structlog.dev.ConsoleRenderer()]


def configure_structlog(json_logs: bool = False) -> None:
    """
    Configure structlog and route stdlib logging through it.

    JSON output is used whenever `json_logs` is set or DEBUG is off.
    """
    json_logs = json_logs or not settings.DEBUG
    shared: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_request_id,
        add_app_context,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso" if json_logs else "%Y-%m-%d %H:%M:%S"),
        mask_contact_details,
    ]

    structlog.configure(
        processors=[
            *shared,
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *_renderers(json_logs),
        ],
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)

    # noisy libraries
    for name in ("httpx", "httpcore", "uvicorn.access", "aiosqlite"):
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Usage:
        logger = get_logger(__name__)
        logger.info("reservation_created", reservation_id=record["id"], phone=payload.phone)
    """
    return structlog.get_logger(name)


__all__ = ["SERVICE_NAME", "SERVICE_VERSION", "configure_structlog", "get_logger"]

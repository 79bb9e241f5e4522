"""Structured logging configuration using structlog.

JSON lines in production, colored console output otherwise. Every event
carries the app name; enum members and OperationErrors passed as fields
are flattened so both renderers show plain values.
"""

import logging
import sys
from enum import Enum
from typing import Iterable

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from resilience_layer.errors.exceptions import OperationError

# Outbound HTTP and event loop internals are chatty below WARNING
QUIET_LOGGERS = ("httpx", "httpcore", "asyncio")


class AppContext:
    """Processor stamping the application name on every event."""

    def __init__(self, app_name: str):
        self.app_name = app_name

    def __call__(
        self, logger: WrappedLogger, method_name: str, event_dict: EventDict
    ) -> EventDict:
        event_dict.setdefault("app", self.app_name)
        return event_dict


def render_enum_values(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Replace enum members (error kinds, breaker states) with their values."""
    for key, value in event_dict.items():
        if isinstance(value, Enum):
            event_dict[key] = value.value
    return event_dict


def flatten_operation_errors(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """
    Expand OperationError fields into message plus kind/status fields.

    ``log.warning("x", error=exc)`` becomes
    ``error="...", error_kind="server", error_status=503``.
    """
    for key in [k for k, v in event_dict.items() if isinstance(v, OperationError)]:
        error = event_dict[key]
        event_dict[key] = error.message
        event_dict.setdefault(f"{key}_kind", error.kind.value)
        if error.status_code is not None:
            event_dict.setdefault(f"{key}_status", error.status_code)
    return event_dict


def build_processors(app_name: str, production: bool) -> list[Processor]:
    """Processors shared by structlog loggers and foreign stdlib records."""
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        AppContext(app_name),
        flatten_operation_errors,
        render_enum_values,
    ]
    if production:
        processors.append(structlog.processors.format_exc_info)
    return processors


def configure_logging(
    log_level: str = "INFO",
    environment: str = "development",
    app_name: str = "resilience-layer",
    quiet_loggers: Iterable[str] = QUIET_LOGGERS,
) -> None:
    """Configure structlog over stdlib logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        environment: "production" selects the JSON renderer
        app_name: Value of the ``app`` field on every event
        quiet_loggers: Third-party loggers raised to WARNING

    Replaces any handlers already installed on the root logger.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    production = environment.lower() == "production"
    shared = build_processors(app_name, production)

    renderer: Processor
    if production:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=shared)
    )
    handler.setLevel(level)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.get_logger(__name__).info(
        "Logging configured",
        log_level=log_level,
        environment=environment,
        renderer="json" if production else "console",
    )

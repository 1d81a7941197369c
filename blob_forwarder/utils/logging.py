"""
Logging configuration for the Blob Event Forwarder.

Every record carries the service identity and, inside a webhook request, the
invocation id of the notification being forwarded so that forwarder,
publisher and telemetry records of one invocation can be joined.
"""

import logging
import sys
from typing import Any, Dict, Iterable, List

import structlog
from structlog.stdlib import LoggerFactory
from structlog.types import EventDict, Processor

from blob_forwarder.core.config import Environment, LogLevel, settings

# Third-party loggers held at WARNING unless debugging
NOISY_LOGGERS = ("aio_pika", "aiormq", "uvicorn.access")


def add_invocation_id(logger: Any, name: str, event_dict: EventDict) -> EventDict:
    """Fall back to the request id when no invocation id is bound."""
    if "invocation_id" not in event_dict and "request_id" in event_dict:
        event_dict["invocation_id"] = event_dict["request_id"]
    return event_dict


def service_info_adder(service_info: Dict[str, str]) -> Processor:
    """Build a processor that stamps the service identity on each record."""

    def add_service_info(logger: Any, name: str, event_dict: EventDict) -> EventDict:
        for key, value in service_info.items():
            event_dict.setdefault(key, value)
        return event_dict

    return add_service_info


def quiet_loggers(names: Iterable[str], level: int) -> None:
    for name in names:
        logging.getLogger(name).setLevel(level)


def configure_logging(log_level: LogLevel = LogLevel.INFO) -> None:
    """
    Configure structured logging for the application.

    Development renders colored console lines; every other environment emits
    one JSON object per line with tracebacks as structured data.

    Args:
        log_level: Logging level to use
    """
    level = LogLevel(getattr(log_level, "value", log_level)).value
    environment = Environment(settings.ENVIRONMENT)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    if level != LogLevel.DEBUG.value:
        quiet_loggers(NOISY_LOGGERS, logging.WARNING)

    processors: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_invocation_id,
        service_info_adder({
            "service": settings.PROJECT_NAME,
            "version": settings.VERSION,
            "environment": environment.value,
        }),
        structlog.processors.StackInfoRenderer(),
    ]

    if environment == Environment.DEVELOPMENT:
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.extend([
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ])

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

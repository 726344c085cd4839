"""
Structured logging configuration using structlog.

Development gets coloured console output; every other environment emits one
JSON object per line. Each line carries the service name and storage backend,
and request-scoped fields bound by the request middleware.
"""

import logging
import sys
from typing import cast

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from agritrust.core.config import Settings, get_settings

# Third-party loggers that are noisy at INFO.
_QUIET_LOGGERS = ("uvicorn.access", "aiosqlite", "asyncio")


def _service_context(settings: Settings) -> Processor:
    def add_service_context(
        _logger: WrappedLogger, _method: str, event_dict: EventDict
    ) -> EventDict:
        event_dict.setdefault("service", settings.project_name)
        event_dict.setdefault("storage", settings.storage_backend)
        return event_dict

    return add_service_context


def configure_logging(settings: Settings | None = None) -> None:
    """
    Configure structlog and route stdlib logging through the same stream.

    SQLAlchemy engine logging follows ``database_echo`` so SQL statements only
    appear when asked for.
    """
    settings = settings or get_settings()
    development = settings.environment == "development"

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if development:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    else:
        processors += [
            _service_context(settings),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    level = getattr(logging, settings.log_level)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.database_echo else logging.WARNING
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance with the given name."""
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))


def bind_request_context(request_id: str, **extra: str) -> None:
    """Attach request-scoped fields to every log line emitted in this context."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id, **extra)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()

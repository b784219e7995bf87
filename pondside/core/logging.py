"""
structlog setup for the venue service.

Every event carries the service name and environment, plus whatever the
request middleware and the scan handlers bound for the current task
(request id, gate station, scale). LOG_FORMAT picks the renderer; "auto"
means JSON in production and the console renderer elsewhere.
"""

import logging
import sys
from typing import Optional

import structlog
from structlog.types import EventDict, Processor

from pondside.core.config import Settings, get_settings

# Loggers that flood a busy weigh-in at INFO
QUIET_LOGGERS = ("uvicorn.access", "aiosqlite", "asyncio")

_configured = False


def _service_context(settings: Settings) -> Processor:
    service = settings.APP_NAME
    environment = settings.ENVIRONMENT

    def add_service_context(logger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", service)
        event_dict.setdefault("env", environment)
        return event_dict

    return add_service_context


def _renderer(settings: Settings) -> Processor:
    fmt = settings.LOG_FORMAT.lower()
    if fmt == "auto":
        fmt = "json" if settings.ENVIRONMENT == "production" else "console"
    if fmt == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def setup_logging(settings: Optional[Settings] = None) -> None:
    global _configured
    if _configured:
        return

    settings = settings or get_settings()
    renderer = _renderer(settings)

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        _service_context(settings),
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if isinstance(renderer, structlog.processors.JSONRenderer):
        shared_processors.append(structlog.processors.format_exc_info)

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            # stdlib records from uvicorn and sqlalchemy get the same treatment
            foreign_pre_chain=shared_processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if settings.DEBUG else logging.WARNING)

    _configured = True


def bind_scan_context(**devices: Optional[str]) -> None:
    """Attach the scanning device ids (station_id, scale_id, ...) to this request's log lines."""
    present = {key: value for key, value in devices.items() if value}
    if present:
        structlog.contextvars.bind_contextvars(**present)


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)

"""structlog setup for the decisionops API and maintenance scripts.

Every entry (ours and stdlib loggers such as SQLAlchemy and uvicorn) goes
through one ProcessorFormatter, so production output is uniformly JSON and
carries the request's correlation id and the service name.
"""

import logging
import logging.config

import structlog
from asgi_correlation_id.context import correlation_id

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite", "asyncio")


def add_correlation_id(logger, method, event_dict):
    cid = correlation_id.get(None)
    if cid:
        event_dict["correlation_id"] = cid
    return event_dict


def service_name_processor(service: str):
    def add_service(logger, method, event_dict):
        event_dict.setdefault("service", service)
        return event_dict

    return add_service


def configure_structlog(log_level: str = "INFO", json_logs: bool = True, service: str = "decisionops") -> None:
    """Configure structlog and route stdlib logging through it.

    Must be called before modules that grab a logger at import time are
    imported, since loggers are cached on first use.

    Args:
        log_level: root level name, e.g. "DEBUG" or "WARNING"
        json_logs: JSON lines when True, coloured console output when False
        service: value of the ``service`` key added to every entry
    """
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_correlation_id,
        service_name_processor(service),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_logs:
        final = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        final = [structlog.dev.ConsoleRenderer()]

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "structlog": {
                "()": structlog.stdlib.ProcessorFormatter,
                "processors": [structlog.stdlib.ProcessorFormatter.remove_processors_meta, *final],
                "foreign_pre_chain": shared_processors,
            },
        },
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "formatter": "structlog",
                "stream": "ext://sys.stdout",
            },
        },
        "root": {"handlers": ["stdout"], "level": log_level.upper()},
        "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
    })

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

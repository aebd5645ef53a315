"""structlog configuration.

Learn: Modules just call structlog.get_logger() and log events with
key/value context. configure_logging() picks the renderer once at
startup: coloured console output for development, one JSON object per
line when PROJECTHUB_LOG_JSON is set (for log shippers).
"""

import logging
import sys

import structlog

from projecthub.config import settings


def configure_logging(level: str | None = None, json_logs: bool | None = None) -> None:
    log_level = getattr(logging, (level or settings.log_level).upper(), logging.INFO)
    use_json = settings.log_json if json_logs is None else json_logs

    logging.basicConfig(level=log_level, format="%(message)s", stream=sys.stdout)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if use_json:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        cache_logger_on_first_use=True,
    )

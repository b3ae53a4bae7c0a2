"""Structured logging configuration"""

import logging
import sys
import structlog
from pythonjsonlogger import jsonlogger

from ..config import settings


def setup_logging(log_level: str = None, json_format: bool = None) -> None:
    """
    Configure structured logging

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            Defaults to settings.LOG_LEVEL
        json_format: Render JSON lines instead of console output.
            Defaults to settings.LOG_JSON
    """
    log_level = (log_level or settings.LOG_LEVEL).upper()
    json_format = settings.LOG_JSON if json_format is None else json_format
    level = getattr(logging, log_level)

    # Configure standard logging
    handler = logging.StreamHandler(sys.stdout)
    if json_format:
        handler.setFormatter(
            CustomJsonFormatter('%(timestamp)s %(level)s %(name)s %(message)s', timestamp=True)
        )
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    renderer = (
        structlog.processors.JSONRenderer()
        if json_format
        else structlog.dev.ConsoleRenderer()
    )

    # Configure structlog
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.format_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Get a structured logger instance

    Args:
        name: Logger name (typically __name__)

    Returns:
        Structured logger instance
    """
    return structlog.get_logger(name)


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter for standard library records (SQLAlchemy, asyncio, ...)"""

    def add_fields(self, log_record: dict, record: logging.LogRecord, message_dict: dict) -> None:
        super(CustomJsonFormatter, self).add_fields(log_record, record, message_dict)

        log_record['service'] = 'affinity-engine'
        log_record['version'] = settings.VERSION
        log_record['level'] = record.levelname.lower()
        log_record['logger_name'] = record.name

        if record.exc_info:
            log_record['exception'] = self.formatException(record.exc_info)

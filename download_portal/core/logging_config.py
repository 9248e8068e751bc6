"""Structured logging configuration.

JSON logs on stdout, one object per line, suitable for any JSON-based log
aggregation system. Every record carries the service name, version and
environment, and records from the security loggers are tagged so they can be
routed separately.
"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any

from pythonjsonlogger.json import JsonFormatter

from download_portal.core.config import settings


class ServiceJsonFormatter(JsonFormatter):
    """JSON formatter that adds service metadata to every record."""

    def __init__(self, *args, **kwargs):
        super().__init__(
            *args,
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={
                "asctime": "@timestamp",
                "levelname": "level",
                "name": "logger",
            },
            **kwargs,
        )

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["@timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["service"] = {
            "name": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
        }

        if "level" in log_record:
            log_record["level"] = log_record["level"].upper()

        if "event_type" not in log_record:
            log_record["event_type"] = f"log.{record.name}"

        log_record["source"] = {
            "file": record.pathname,
            "line": record.lineno,
            "function": record.funcName,
        }


class SecurityEventFilter(logging.Filter):
    """Tag records emitted by the security loggers."""

    SECURITY_LOGGERS = ("security.events", "security.auth")

    def filter(self, record: logging.LogRecord) -> bool:
        record.is_security_event = record.name.startswith(self.SECURITY_LOGGERS)
        return True


def configure_logging(level: int | None = None) -> None:
    """Configure structured logging for the application.

    Call this at application startup.
    """
    if level is None:
        level = logging.DEBUG if settings.DEBUG else logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    formatter = ServiceJsonFormatter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(SecurityEventFilter())
    root_logger.addHandler(console_handler)

    _configure_uvicorn_loggers(formatter)

    logging.info(
        "Logging configured",
        extra={"event_type": "system.startup.logging_configured", "log_level": logging.getLevelName(level)},
    )


def _configure_uvicorn_loggers(formatter: logging.Formatter) -> None:
    """Configure uvicorn loggers to use JSON format."""
    for logger_name in ["uvicorn", "uvicorn.error", "uvicorn.access"]:
        logger = logging.getLogger(logger_name)
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.propagate = False

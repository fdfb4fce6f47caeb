"""
Structured (JSON) logging for the devHabit API.
"""
import logging
import sys
from typing import Any, Dict

from pythonjsonlogger import jsonlogger

from config import get_settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Adds the standard fields every log line carries."""

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = self.formatTime(record, self.datefmt)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["module"] = record.module
        log_record["function"] = record.funcName
        log_record["line"] = record.lineno
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)


def configure_logging() -> None:
    """
    Configure the root logger to emit JSON lines on stdout.

    Call once during application startup; existing root handlers are
    replaced so repeated calls do not duplicate output.
    """
    settings = get_settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(
        CustomJsonFormatter(
            fmt="%(timestamp)s %(level)s %(name)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
            static_fields={
                "environment": settings.environment,
                "application": "devhabit-api",
            },
        )
    )
    root_logger.addHandler(handler)

    logging.getLogger("uvicorn").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    root_logger.info("Structured logging configured", extra={"log_level": settings.log_level})
